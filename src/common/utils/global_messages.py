class GlobalMessages:
    # Search Messages
    SEARCH_PARAMETER_REQUIRED = "At least one search parameter is required."
    SEARCH_QUERY_REQUIRED = "Query parameter q is required."
    SEARCH_QUERY_LENGTH = "Search query must be between {min} and {max} characters."
    SEARCH_QUERY_EMPTY = "Search query contains no searchable terms."
    SEARCH_INVALID_TYPE = "Invalid search type '{value}'. Expected one of: {allowed}."
    SEARCH_INVALID_LEVEL = "Invalid level '{value}'. Expected one of: {allowed}."
    SEARCH_INVALID_LIMIT = "Invalid limit '{value}'. Expected a whole number."
    SEARCH_INVALID_TEACHER_ID = "Invalid teacherId '{value}'. Expected a UUID."
    SEARCH_FAILED = "Search failed."
    SUGGESTIONS_FAILED = "Failed to get suggestions."
    FILTERS_FAILED = "Failed to get filters."

    # Rate limiting
    RATE_LIMIT_EXCEEDED = "Too many requests. Please slow down and try again shortly."
