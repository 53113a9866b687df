"""
Shared result types
====================
Every validator returns a ValidationResult, every service operation an
OperationResult. Pages turn them into toasts.
"""

from typing import Dict, List
from dataclasses import dataclass, field


@dataclass
class ValidationResult:
    """Result of validation check"""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str):
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str):
        self.warnings.append(message)

    def merge(self, other: 'ValidationResult'):
        """Merge another validation result into this one"""
        if not other.is_valid:
            self.is_valid = False
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)


@dataclass
class OperationResult:
    """Result of a service operation"""
    success: bool
    message: str
    data: Dict = None
    errors: List[str] = None

    def __post_init__(self):
        if self.errors is None:
            self.errors = []
        if self.data is None:
            self.data = {}

    @classmethod
    def not_found(cls, entity: str) -> 'OperationResult':
        return cls(success=False, message=f"{entity} not found", errors=[f"{entity} not found"])

    @classmethod
    def invalid(cls, validation: ValidationResult) -> 'OperationResult':
        return cls(success=False, message="Validation failed", errors=list(validation.errors))

    @classmethod
    def failed(cls, action: str, error: Exception) -> 'OperationResult':
        return cls(success=False, message=f"Failed to {action}", errors=[str(error)])
