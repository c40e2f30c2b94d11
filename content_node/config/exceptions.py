class ConfigurationError(Exception):
    """Raised when the process environment cannot support the node (fatal)."""
