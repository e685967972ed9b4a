def mask_key(key: str) -> str:
    """Low-leak identifier for a credential: its last four characters only."""
    return key[-4:] if len(key) > 4 else "****"
