"""Git module error types.

Every command failure is one of three kinds:

- ``ValidationError``: bad ref, bad name, bad argument count or option.
- ``StateError``: the repository is in a state that forbids the operation
  (detached HEAD, protected branch, missing origin, non fast-forward).
- ``NoOpResult``: a benign short-circuit such as "already up to date", or the
  display text of a read-only command.

These are raised inside the engine and converted into outcomes by
``branchplane.commands.execute``.
"""

from __future__ import annotations


class GitError(Exception):
    """Base error for simulated git operations."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(GitError):
    """Bad ref, name, option or argument count."""

    kind = "validation"


class RefNotFoundError(ValidationError):
    """Reference (branch, tag, commit) not found."""

    def __init__(self, ref: str) -> None:
        super().__init__(f"The ref {ref} does not exist or is unknown")
        self.ref = ref


class BadRelativeRefError(ValidationError):
    """Relative ref walked past the root commit."""

    def __init__(self, commit_id: str, modifier: str) -> None:
        super().__init__(f"Commit {commit_id} doesn't have a {modifier}")
        self.commit_id = commit_id
        self.modifier = modifier


class InvalidBranchNameError(ValidationError):
    """Branch or tag name fails validation or is already taken."""

    def __init__(self, name: str, kind: str = "branch") -> None:
        super().__init__(f"That {kind} name {name!r} is not allowed!")
        self.name = name


class RefExistsError(ValidationError):
    """Ref id already present in the graph."""

    def __init__(self, ref: str) -> None:
        super().__init__(f"A ref named {ref} already exists")
        self.ref = ref


class ArgumentCountError(ValidationError):
    """Too few or too many arguments for a command."""

    def __init__(self, what: str, bound: int, too_many: bool) -> None:
        if too_many:
            message = f"I expect at most {bound} argument(s) {what}"
        else:
            message = f"I expect at least {bound} argument(s) {what}"
        super().__init__(message)
        self.what = what
        self.bound = bound
        self.too_many = too_many


class UnsupportedOptionError(ValidationError):
    """Option not accepted by the command, or incompatible options."""

    def __init__(self, option: str) -> None:
        super().__init__(f"The option {option!r} is not supported")
        self.option = option


class CommandNotSupportedError(ValidationError):
    """No handler for the requested dialect/method."""

    def __init__(self, dialect: str, method: str) -> None:
        super().__init__(f"The command {dialect} {method} isn't supported, sorry!")
        self.dialect = dialect
        self.method = method


# =============================================================================
# State Errors
# =============================================================================


class StateError(GitError):
    """Operation forbidden in the current repository state."""

    kind = "state"


class DetachedHeadError(StateError):
    """Operation requires a branch but HEAD is detached."""


class ProtectedBranchError(StateError):
    """Branch may not be deleted or modified this way."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Cannot modify branch {name}: {reason}")
        self.name = name
        self.reason = reason


class OriginRequiredError(StateError):
    """Remote command issued without an origin."""

    def __init__(self) -> None:
        super().__init__("There is no origin for this command! Try git clone first")


class OriginExistsError(StateError):
    """Origin already created."""

    def __init__(self) -> None:
        super().__init__("An origin already exists! You cannot make a new one")


class NotFastForwardError(StateError):
    """Remote sync would lose history on one side."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class UpToDateError(StateError):
    """Remote sync has nothing to transfer."""

    def __init__(self) -> None:
        super().__init__("Both sides are already up to date, there is nothing to do")


# =============================================================================
# Benign Results
# =============================================================================


class NoOpResult(GitError):
    """Benign short-circuit carrying display text."""

    kind = "noop"
