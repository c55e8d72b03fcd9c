class PolyglotError(Exception):
    exit_code: int = 1

    def __init__(self, message: str):
        super().__init__(message)

class ConfigError(PolyglotError):
    exit_code = 2


class ManifestError(ConfigError):
    pass


class DetectionError(PolyglotError):
    exit_code = 3


class CompileError(PolyglotError):
    exit_code = 4

class DependencyInstallError(PolyglotError):
    exit_code = 5


class BundleError(PolyglotError):
    exit_code = 6


class PathConflictError(BundleError):
    exit_code = 7

    def __init__(self, message: str, conflicts: list[str]):
        super().__init__(message)
        self.conflicts = conflicts

class PackagerBusyError(PolyglotError):
    exit_code = 8


class PackagingCancelledError(PolyglotError):
    exit_code = 9


class PackagingError(PolyglotError):
    """Failure of a packaging run, tagged with the stage that failed."""

    def __init__(self, stage: str, cause: PolyglotError):
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.cause = cause

    @property
    def exit_code(self) -> int:
        return self.cause.exit_code
