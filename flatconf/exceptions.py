# flatconf/exceptions.py
"""
flatconf.exceptions
-------------------

Custom exceptions for flatconf.
"""


class ConfigError(Exception):
    """
    Base class for every error raised by flatconf.
    """


class KeyPathError(ConfigError, ValueError):
    """
    Raised when a dotted key or one of its segments is not a valid key path.
    """


class ParseError(ConfigError):
    """
    Raised when a buffer cannot be parsed with the rules of its declared format.
    """

    def __init__(self, message, format=None):
        super().__init__(message)
        self.format = format


class UnsupportedFormat(ConfigError, ValueError):
    """
    Raised for a format tag or file extension no parser is registered for.
    """

    def __init__(self, format):
        super().__init__(f"Unsupported config format: {format!r} (expected json, yaml or toml)")
        self.format = format


class FileReadError(ConfigError, OSError):
    """
    Raised when a configuration file cannot be read.
    """

    def __init__(self, path, reason):
        super().__init__(f"Cannot read config file {path}: {reason}")
        self.path = path


class EncodeError(ConfigError):
    """
    Raised when a value handed to a structural source cannot be encoded.
    """


class DecodeError(ConfigError):
    """
    Raised when configuration values cannot be bound onto a target.

    ``path`` is the dotted path of the offending value ("" for the root).
    """

    def __init__(self, message, path=""):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class KeyConflictError(DecodeError):
    """
    Raised by strict unflattening when a key is also the parent of other keys.
    """

    def __init__(self, keys):
        super().__init__(
            "Keys hold a value and are also parents of other keys: " + ", ".join(keys)
        )
        self.keys = list(keys)


class MissingMandatoryConfig(ConfigError):
    """
    Raised when one or more mandatory config keys are missing.
    """

    def __init__(self, keys):
        super().__init__(f"Missing mandatory configuration keys: {', '.join(keys)}")
        self.missing_keys = keys
