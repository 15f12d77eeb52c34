"""Platform service - built-in and custom sales channels."""
import logging
from typing import List, Optional

from app.exceptions import BusinessLogicError, NotFoundError
from app.models import Platform, PLATFORM_COLORS, ALL_PLATFORMS_NAME, BUILTIN_PLATFORMS

logger = logging.getLogger(__name__)


def ensure_default_platforms(session) -> List[Platform]:
    """Seed the built-in platforms when the table is empty and return all platforms."""
    platforms = list_platforms(session)
    if platforms:
        return platforms

    platforms = Platform.builtins()
    session.add_all(platforms)
    session.flush()
    logger.info("Seeded default platforms")
    return platforms


def list_platforms(session) -> List[Platform]:
    return session.query(Platform).order_by(Platform.position.asc()).all()


def get_platform(session, platform_id: str) -> Platform:
    platform = session.query(Platform).filter(Platform.id == platform_id).first()
    if not platform:
        raise NotFoundError(f'Platform {platform_id} not found')
    return platform


def validate_platform_name(name: str, existing: List[Platform]) -> Optional[str]:
    """Centralized platform name validation (required, unique ignoring case, not reserved)."""
    name = (name or '').strip()
    if not name:
        return 'Platform name is required'

    lowered = name.lower()
    if lowered == ALL_PLATFORMS_NAME.lower():
        return f"'{ALL_PLATFORMS_NAME}' is a reserved name"

    for platform in existing:
        if platform.name.lower() == lowered:
            return f"A platform named '{platform.name}' already exists"
    return None


def add_custom_platform(session, name: str, color: str = 'gray') -> Platform:
    """
    Create a user-defined platform.

    Raises:
        BusinessLogicError: If the name is blank, reserved, already taken or
            the color tag is unknown.
    """
    existing = ensure_default_platforms(session)
    error = validate_platform_name(name, existing)
    if error:
        logger.warning(f"Rejected platform name {name!r}: {error}")
        raise BusinessLogicError(error, status_code=409)

    if color not in PLATFORM_COLORS:
        raise BusinessLogicError(f'Unknown color: {color}')

    try:
        platform = Platform(
            name=name.strip(),
            color=color,
            is_custom=True,
            position=max((p.position for p in existing), default=-1) + 1
        )
        session.add(platform)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Custom platform created: {platform.name} ({platform.id})")
    return platform


def delete_platform(session, platform_id: str) -> None:
    """Delete a custom platform. Orders keep their platform snapshot."""
    platform = get_platform(session, platform_id)
    if not platform.is_custom:
        raise BusinessLogicError(f'Built-in platform "{platform.name}" cannot be deleted')

    try:
        session.delete(platform)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Custom platform deleted: {platform.name} ({platform_id})")


def migrate_builtin_colors(platforms=(), orders=()) -> int:
    """
    Move built-in platforms still carrying pre-brand colors to their brand tags.

    Matches by exact name (TikTok, Instagram, Facebook) and rewrites icon,
    color and the custom flag on platforms and on order platform snapshots.
    Returns the number of records changed.
    """
    brand_styles = {name: (icon, color) for name, icon, color in BUILTIN_PLATFORMS}
    changed = 0
    for platform in platforms:
        style = brand_styles.get(platform.name)
        if style and platform.color != style[1]:
            platform.icon, platform.color = style
            platform.is_custom = False
            changed += 1
    for order in orders:
        style = brand_styles.get(order.platform_name)
        if style and order.platform_color != style[1]:
            order.platform_icon, order.platform_color = style
            order.platform_is_custom = False
            changed += 1
    return changed
