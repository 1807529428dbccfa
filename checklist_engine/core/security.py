from fastapi import Header


def get_actor_email(x_user_email: str | None = Header(default=None)) -> str | None:
    """
    DEV AUTH: the X-User-Email header names the actor for the audit trail.
    Capability checks belong to the host application.
    Example: X-User-Email: tecnico@empresa.test
    """
    if x_user_email is None:
        return None
    return x_user_email.strip() or None
