"""
Activity transformer.
Projects platform activity log items onto display history entries.
"""

import logging
from typing import Any, Dict, List, Tuple

from quote_workflow.models.activity import HistoryEntry
from quote_workflow.transformers.base_transformer import BaseTransformer
from quote_workflow.utils.date_utils import parse_api_datetime


logger = logging.getLogger(__name__)


# action code -> (title, variant)
ACTION_DISPLAY: Dict[str, Tuple[str, str]] = {
    'QUOTE_CREATED': ('Quote Created', 'info'),
    'QUOTE_APPROVED': ('Approved', 'success'),
    'QUOTE_REJECTED': ('Rejected', 'error'),
    'QUOTE_CONVERTED': ('Converted to Order', 'success'),
    'STATUS_CHANGED': ('Status Updated', 'warning'),
}


class ActivityTransformer(BaseTransformer):
    """Transform activity log items to HistoryEntry."""

    def to_model(self, payload: Dict[str, Any]) -> HistoryEntry:
        """
        Transform one activity item.

        Known action codes get a fixed title and variant; any other code is
        shown with underscores replaced by spaces.
        """
        action = str(self.first_of(payload, 'action', 'actionType', default='')).strip()
        title, variant = ACTION_DISPLAY.get(action, (action.replace('_', ' '), 'info'))

        return self.build(
            HistoryEntry,
            'activity',
            action=action,
            title=title or 'Activity',
            description=str(self.first_of(payload, 'details', 'description', default='')),
            variant=variant,
            timestamp=parse_api_datetime(self.first_of(payload, 'timestamp', 'createdAt')),
            user_id=self.first_of(payload, 'userId', 'accountId'),
            user_name=self.safe_get(payload, 'userName'),
        )

    def to_history(self, items: List[Dict[str, Any]]) -> List[HistoryEntry]:
        """Transform a list of activity items, newest first."""
        entries = [self.to_model(item) for item in items or []]
        entries.sort(
            key=lambda e: e.timestamp.timestamp() if e.timestamp else float('-inf'),
            reverse=True,
        )
        logger.debug(f"Projected {len(entries)} activity entries")
        return entries
