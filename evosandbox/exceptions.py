class SandboxError(Exception):
    """Base for all evosandbox exceptions."""

    pass


# High-level families
class ConfigurationError(SandboxError):
    """Configuration payload cannot be interpreted at all.

    Out-of-range values never raise; they are healed during normalization.
    """

    pass


class FitnessError(SandboxError):
    """Fitness function failures."""

    pass


class EvolutionError(SandboxError):
    """Evolution process failures."""

    pass


class ImportValidationError(SandboxError):
    """Malformed run snapshot payload."""

    pass


# Fitness subtypes
class FitnessCompilationError(FitnessError):
    """Custom fitness expression failed to compile or produced a non-finite probe."""

    pass


class UnsafeExpressionError(FitnessCompilationError):
    """Custom fitness expression uses a construct outside the allowed grammar."""

    pass
