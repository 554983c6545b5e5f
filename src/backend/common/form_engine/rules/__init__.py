from .rpas_incident import RPAS_INCIDENT

__all__ = [
    "RPAS_INCIDENT",
]
