import uuid


def gen_id(prefix: str) -> str:
    """Opaque record id tagged with its type, e.g. ``dev_<hex>`` or ``unt_<hex>``."""
    return f"{prefix}_{uuid.uuid4().hex}"
