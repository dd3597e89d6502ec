"""pkgbuild exceptions.

Build failures travel through the build graph as values (see
`pkgbuild.graph`), so most of these are returned rather than raised. They
still derive from a common base so callers can catch them uniformly when a
summary error is re-raised.
"""


class PkgbuildError(Exception):
    """Base exception for all pkgbuild errors."""

    pass


class TaskGraphError(PkgbuildError):
    """The task graph is malformed (unknown ids, missing root, cycles)."""

    pass


class BuildError(PkgbuildError):
    """Building a single task failed.

    Attributes:
        context: Human readable description of what was being done, e.g.
            "building foo@1.0.0".
        cause: The underlying error reported by the package builder.
    """

    def __init__(self, context: str, cause: BaseException | None = None):
        self.context = context
        self.cause = cause
        message = context if cause is None else f"{context}: {cause}"
        super().__init__(message)


class CommandError(PkgbuildError):
    """A build or install command exited with a non-zero status.

    Attributes:
        command: The shell command as it was run.
        returncode: Exit status of the command.
        output: Captured output (empty when output was not captured).
    """

    def __init__(self, command: str, returncode: int, output: str = ""):
        self.command = command
        self.returncode = returncode
        self.output = output
        parts = [f"command failed with exit code {returncode}: {command}"]
        if output:
            parts.append(output.rstrip())
        super().__init__("\n".join(parts))


class ExpressionSyntaxError(PkgbuildError):
    """A command expression could not be parsed.

    Attributes:
        input: The expression text being parsed.
        index: Character offset of the offending token.
        reason: Short description of the problem.
    """

    def __init__(self, input: str, index: int, reason: str):
        self.input = input
        self.index = index
        self.reason = reason
        super().__init__(
            f"Invalid expression syntax: {reason} (at {index} character)"
        )


class ExpressionEvaluationError(PkgbuildError):
    """A command expression referenced something the evaluator cannot resolve."""

    pass
