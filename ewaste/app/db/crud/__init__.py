"""CRUD operations package.

- waste_data.py: saved capture sessions per user
- marketplace.py: marketplace listings
- meeting.py: meeting requests between users
"""

# Waste history operations
from ewaste.app.db.crud.waste_data import (
    get_last_30_days_data,
    get_user_waste_data,
    group_by_category,
    save_waste_data,
)

# Marketplace operations
from ewaste.app.db.crud.marketplace import (
    add_marketplace_item,
    convert_to_marketplace_item,
    delete_marketplace_item,
    get_marketplace_item,
    get_marketplace_items,
    update_marketplace_item_status,
)

# Meeting request operations
from ewaste.app.db.crud.meeting import (
    create_meeting_request,
    list_meeting_requests,
)

__all__ = [
    # Waste history
    "get_last_30_days_data",
    "get_user_waste_data",
    "group_by_category",
    "save_waste_data",
    # Marketplace
    "add_marketplace_item",
    "convert_to_marketplace_item",
    "delete_marketplace_item",
    "get_marketplace_item",
    "get_marketplace_items",
    "update_marketplace_item_status",
    # Meeting requests
    "create_meeting_request",
    "list_meeting_requests",
]
