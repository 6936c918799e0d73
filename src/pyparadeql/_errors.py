"""Exception hierarchy for search query compilation."""


class CompileError(Exception):
    """Base exception for search query compilation errors.

    Provides dual messaging: a sanitized user-facing message and
    internal details for logging (CWE-209 prevention).
    """

    def __init__(
        self,
        user_message: str,
        internal_details: str = "",
        wrapped: Exception | None = None,
    ) -> None:
        super().__init__(user_message)
        self.user_message = user_message
        self.internal_details = internal_details or user_message
        self.wrapped = wrapped

    def internal(self) -> str:
        return self.internal_details


class UnknownRelationError(CompileError):
    """Raised when a predicate targets a relation that is not bound or not indexed."""


class UnknownFieldError(CompileError):
    """Raised when a predicate field is not declared on the resolved search index."""


class InvalidOptionError(CompileError):
    """Raised when a search option name or value is invalid."""


class UnsupportedTypeError(CompileError):
    """Raised when a literal value has no defined encoding."""


class InvalidRangeLiteralError(UnsupportedTypeError):
    """Raised when range literal text cannot be decoded."""


class ReopenedAccumulatorError(CompileError):
    """Raised when a finalized relation is mutated again."""


class InvalidSchemaError(CompileError):
    """Raised when there is a problem with the declared search schema."""


class InvalidFieldNameError(CompileError):
    """Raised when a field name is invalid or empty."""


class InvalidArgumentsError(CompileError):
    """Raised when predicate arguments are invalid."""


class InvalidBindingError(CompileError):
    """Raised when an alias is bound to two different relations."""


class UnsupportedExpressionError(CompileError):
    """Raised when a predicate node type is not supported."""


class MaxDepthExceededError(CompileError):
    """Raised when predicate nesting depth exceeds the limit."""


class MaxOutputLengthExceededError(CompileError):
    """Raised when SQL output length limit is exceeded."""


class IntrospectionError(CompileError):
    """Raised when search index introspection fails."""


# Sanitized user-facing error message constants
ERR_MSG_UNKNOWN_RELATION = "relation is not bound to a search index"
ERR_MSG_UNKNOWN_FIELD = "field not found in search index"
ERR_MSG_INVALID_OPTION = "invalid search option"
ERR_MSG_UNSUPPORTED_TYPE = "unsupported type"
ERR_MSG_INVALID_RANGE = "invalid range literal"
ERR_MSG_REOPENED = "search on this relation is already finalized"
ERR_MSG_INVALID_SCHEMA = "invalid search schema"
ERR_MSG_INVALID_ARGUMENTS = "invalid predicate arguments"
ERR_MSG_UNSUPPORTED_EXPRESSION = "unsupported predicate type"
