"""Services subpackage - tier persistence."""
from .tier_service import TierService

__all__ = ['TierService']
