class NotFoundError(ValueError):
    """Entity is absent or not owned by the caller."""


class ConflictError(ValueError):
    pass


class ForbiddenError(ValueError):
    pass


class AuthenticationError(ValueError):
    pass


class BadRequestError(ValueError):
    pass


class InvalidAmountError(BadRequestError):
    pass


class InvalidDateError(BadRequestError):
    pass


class InvalidDateRangeError(BadRequestError):
    pass


class InvalidCategoryError(BadRequestError):
    pass


class InvalidMonthError(BadRequestError):
    pass


class CategoryInUseError(BadRequestError):
    pass
