"""Response payload builders shared by several route modules."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from thotnet.core import achievements, xp_system
from thotnet.core.gamification import XPAwardResult
from thotnet.db.badges_repository import BadgeRecord
from thotnet.db.profiles_repository import ProfileRecord
from thotnet.utils.text_utils import localized


def badge_dict(badge: BadgeRecord, locale: str = "en") -> dict[str, Any]:
    return {
        "id": badge.id,
        "name": localized(badge.name_en, badge.name_es, locale),
        "description": localized(badge.description_en, badge.description_es, locale),
        "icon": badge.icon,
        "tier": badge.tier,
        "xp_reward": badge.xp_reward,
        "trigger_type": badge.trigger_type,
        "threshold": badge.threshold,
        "condition": achievements.format_trigger_condition(badge.trigger_type, badge.threshold, locale),
    }


def xp_award_dict(award: XPAwardResult | None) -> dict[str, Any] | None:
    if award is None:
        return None
    return {
        "action_type": award.action_type,
        "amount": award.amount,
        "total_xp": award.total_xp,
        "level": award.new_level,
        "leveled_up": award.leveled_up,
    }


def profile_dict(profile: ProfileRecord) -> dict[str, Any]:
    """Profile row plus derived level data."""
    data = asdict(profile)
    data["tier"] = xp_system.level_tier(profile.level)
    data["level_progress"] = xp_system.level_progress(profile.total_xp)
    data["xp_to_next_level"] = xp_system.xp_to_next_level(profile.total_xp)
    data["is_complete"] = profile.is_complete
    return data
