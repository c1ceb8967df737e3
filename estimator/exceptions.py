"""
Custom exceptions for the cost estimator.

Exception Hierarchy:
    EstimatorError (base)
    ├── ConfigurationError - Invalid or missing configuration
    ├── FormulaError - Malformed formula definition
    │   └── MissingFormulaError - No formula for a requested service
    ├── UnknownSystemError - System id not present in the configuration
    └── SnapshotError - Malformed snapshot document
"""

from typing import List, Optional


class EstimatorError(Exception):
    """
    Base exception for all estimator errors.

    Attributes:
        message: Human-readable error description
        service: Optional service name the error relates to
    """

    def __init__(self, message: str, service: Optional[str] = None):
        self.message = message
        self.service = service

        if service:
            full_message = f"{message} [service={service}]"
        else:
            full_message = message

        super().__init__(full_message)


class ConfigurationError(EstimatorError):
    """
    Raised when the cost configuration is invalid or incomplete.

    This is the only error that aborts engine initialization, e.g. when
    a whole configuration section is missing.

    Example:
        >>> validate_config(config)
        ConfigurationError: Configuration validation failed: Missing formula for service: search
    """

    def __init__(self, message: str, config_file: Optional[str] = None, errors: Optional[List[str]] = None):
        self.config_file = config_file
        self.errors = errors or []
        if config_file:
            message = f"{message} (file: {config_file})"
        super().__init__(message)


class FormulaError(EstimatorError):
    """Raised when a formula definition cannot be interpreted."""


class MissingFormulaError(FormulaError):
    """
    Raised when no formula exists for a requested service.

    Fatal for the single service request; the cost aggregator catches it
    and records a cost of 0 for that service.
    """

    def __init__(self, service: str):
        super().__init__(f"No formula found for service type: {service}", service=service)


class UnknownSystemError(EstimatorError):
    """
    Raised when an unknown system id is requested.

    Example:
        >>> config.get_system_costs("mainframe")
        UnknownSystemError: System 'mainframe' not found. Available: ['cloud-standard', ...]
    """

    def __init__(self, system_id: str, available_systems: List[str]):
        self.system_id = system_id
        self.available_systems = available_systems
        super().__init__(f"System '{system_id}' not found. Available: {available_systems}")


class SnapshotError(EstimatorError):
    """Raised when an imported snapshot document is malformed."""
