from credvault.models.user import User

__all__ = ["User"]
