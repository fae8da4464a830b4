from typing import AbstractSet

import discord


def clamp(n: int, low: int, high: int) -> int:
    return max(low, min(high, n))


def is_admin(user_id: int, guild_admin: bool, admin_ids: AbstractSet[int]) -> bool:
    # with no configured ids, guild administrators are the admins
    if admin_ids:
        return int(user_id) in admin_ids
    return bool(guild_admin)


def admin_only(interaction: discord.Interaction) -> bool:
    from config import ADMIN_USER_IDS

    perms = getattr(interaction.user, "guild_permissions", None)
    return is_admin(interaction.user.id, bool(perms and perms.administrator), ADMIN_USER_IDS)
