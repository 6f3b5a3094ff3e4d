"""Validators module."""

from branchflow.validators.node_id import NodeIdValidation, validate_node_id
from branchflow.validators.mermaid import (
    ValidationResult,
    validate_definition,
    validate_mermaid,
    validator_node,
)

__all__ = [
    "NodeIdValidation",
    "ValidationResult",
    "validate_definition",
    "validate_mermaid",
    "validate_node_id",
    "validator_node",
]
