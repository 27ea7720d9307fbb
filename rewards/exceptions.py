class RewardsEngineError(Exception):
    pass


class ValidationError(RewardsEngineError):
    pass


class InvalidStateTransitionError(ValidationError):
    pass


class NotFoundError(RewardsEngineError):
    pass


class ItemInactiveError(RewardsEngineError):
    pass


class InsufficientResourcesError(RewardsEngineError):
    pass


class InsufficientPointsError(InsufficientResourcesError):
    pass


class ItemSoldOutError(InsufficientResourcesError):
    pass


class InvariantViolationError(RewardsEngineError):
    pass
