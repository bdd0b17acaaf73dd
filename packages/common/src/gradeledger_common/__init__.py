"""Common utilities and base classes for gradeledger packages.

- **Exceptions**: Unified exception hierarchy with context support
- **Transitions**: Declarative status graph validation
- **Config**: YAML/JSON loading with environment variable substitution
"""

from gradeledger_common.config import VariableSubstitution, load_config
from gradeledger_common.exceptions import (
    ConfigurationError,
    GradeledgerError,
    NotFoundError,
    OperationError,
    ResourceError,
    SerializationError,
    ValidationError,
)
from gradeledger_common.transitions import InvalidTransitionError, TransitionValidator

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Exceptions
    "GradeledgerError",
    "ValidationError",
    "ConfigurationError",
    "ResourceError",
    "NotFoundError",
    "OperationError",
    "SerializationError",
    # Transitions
    "InvalidTransitionError",
    "TransitionValidator",
    # Config
    "VariableSubstitution",
    "load_config",
]
