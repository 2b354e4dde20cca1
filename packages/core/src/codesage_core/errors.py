"""Exception hierarchy for the review pipeline.

Only BackendConfigError is fatal to a run: it is raised while the backend is
being constructed, before any file is touched. Every other error is scoped to
a single file: the pipeline catches it, prints a warning, and moves on.
"""

from __future__ import annotations


class CodeSageError(Exception):
    """Base class for all errors raised by codesage_core."""


class BackendConfigError(CodeSageError):
    """The review backend cannot be built: unknown provider, missing SDK or credentials."""


class SourceUnavailable(CodeSageError):
    """The requested branch or file could not be resolved by git."""


class BackendInvocationFailed(CodeSageError):
    """A backend call failed (network, auth, rate limit, empty or malformed response)."""


class FixRejected(CodeSageError):
    """The backend's replacement content failed the structural sanity check."""


class FilesystemFailure(CodeSageError):
    """Reading, backing up, or writing a file failed."""
