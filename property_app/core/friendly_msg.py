from .errors import MarketplaceError

CATEGORY_MESSAGES = {
    "not_found": "We couldn't find what you were looking for.",
    "forbidden": "You don’t have permission to perform this action.",
    "bad_request": "This action isn't allowed right now.",
    "conflict": "Someone else got there first. Refresh and try again.",
    "external_failure": "A payment or assistant service is temporarily unavailable. Please try again shortly.",
    "unconfigured": "This feature isn't set up yet. Please contact support.",
}

FRIENDLY_MESSAGES = {
    "CircuitOpenError": CATEGORY_MESSAGES["external_failure"],
    "ConnectionError": "Unable to connect to a required service. Please try again later.",
    "TimeoutError": "The request took too long. Please try again later.",
    "IntegrityError": "This action conflicts with an existing record.",
    "DatabaseError": "Temporary issue while accessing data. Please try again shortly.",
    "ValueError": "Invalid data received. Please check your input and try again.",
}

DEFAULT_MESSAGE = "Something went wrong on our end. Please try again."


def get_friendly_message(error: Exception) -> str:
    if isinstance(error, MarketplaceError):
        return error.detail or CATEGORY_MESSAGES.get(error.category, DEFAULT_MESSAGE)

    for cls in type(error).__mro__:
        if cls.__name__ in FRIENDLY_MESSAGES:
            return FRIENDLY_MESSAGES[cls.__name__]
    return DEFAULT_MESSAGE
