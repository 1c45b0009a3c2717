from core.utils.uuid_utils import uuid7


def get_correlation_id() -> str:
    """Generate a new correlation ID"""
    return str(uuid7())
