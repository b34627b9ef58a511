def to_uppercase(value: str | None) -> str | None:
    """
    Converts a string to uppercase if it's not None.

    Surrounding whitespace is dropped too, so `LOG_LEVEL=" info "` still validates.
    """
    if value is None:
        return None
    return value.strip().upper()

def to_lowercase(value: str | None) -> str | None:
    """
    Converts a string to lowercase if it's not None.
    """
    if value is None:
        return None
    return value.strip().lower()
