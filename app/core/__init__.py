"""
Core Application - Infrastructure & Base Classes

Shared building blocks used by every settlement app. Nothing here knows
about payments, bookings or payouts.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - VersionedMixin: Version column incremented with F() on every update

Services (import from core.services):
    - BaseService: Base class for the service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError, NotFoundError, PermissionDeniedError
    - ConflictError, RateLimitError, ExternalServiceError

Views (import from core.views):
    - health_check: Database and cache probe
"""
