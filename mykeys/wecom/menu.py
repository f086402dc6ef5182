"""Custom application menu; click keys map to chat commands."""
import logging

from ..exceptions import WeComAPIError
from .api import WeComClient

logger = logging.getLogger("mykeys.wecom")

DEFAULT_MENU = {
    "button": [
        {"name": "📋 List", "type": "click", "key": "CMD_LIST"},
        {"name": "➕ Add", "type": "click", "key": "CMD_ADD"},
        {
            "name": "More",
            "sub_button": [
                {"name": "⏰ Expiring", "type": "click", "key": "CMD_EXPIRING"},
                {"name": "❓ Help", "type": "click", "key": "CMD_HELP"},
            ],
        },
    ]
}


async def sync_menu(client: WeComClient, menu: dict = DEFAULT_MENU) -> bool:
    """Install ``menu`` unless WeCom already serves an identical one.

    Returns:
        True if the menu was (re)created.
    """
    try:
        current = await client.get_menu()
    except WeComAPIError as err:
        # 46003: no menu configured yet
        if err.errcode != 46003:
            raise
        current = {"button": []}
    if current.get("button") == menu["button"]:
        logger.debug("WeCom menu already up to date")
        return False
    await client.create_menu(menu)
    return True
