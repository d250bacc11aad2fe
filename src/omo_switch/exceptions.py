"""Exceptions for omo-switch."""


class OmoSwitchError(Exception):
    """Base exception for omo-switch errors."""

    pass


class ConfigFileError(OmoSwitchError):
    """Error reading, writing or parsing a configuration file."""

    pass


class ConfigValidationError(OmoSwitchError):
    """Configuration document failed schema validation.

    Attributes:
        errors: Field-level messages, one per validation failure
    """

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []


class ProfileNotFoundError(OmoSwitchError):
    """A specific profile or preset does not exist in the searched scope."""

    def __init__(self, identifier: str, scope: str | None = None):
        where = f" in {scope} scope" if scope else ""
        super().__init__(f"Profile not found{where}: {identifier}")
        self.identifier = identifier
        self.scope = scope


class ProfileExistsError(OmoSwitchError):
    """Import of an id that already exists without force."""

    pass


class ProjectRootNotFoundError(OmoSwitchError):
    """No marker directory was found in the directory ancestry."""

    pass


class SchemaUnavailableError(OmoSwitchError):
    """No cached, downloaded or bundled schema could be obtained."""

    pass
