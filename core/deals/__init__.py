"""Contract to Deal conversion."""

from core.deals.mapper import DealDraft, map_deal_status, map_deliverable_type, to_deal

__all__ = ["DealDraft", "map_deal_status", "map_deliverable_type", "to_deal"]
