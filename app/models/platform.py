"""Platform model - sales channels orders are attributed to."""
import uuid
from sqlalchemy import Column, String, Boolean, Integer
from sqlalchemy.orm import validates
from app.database import Base
from app.exceptions import ValidationError


# Reserved for the "all platforms" filter entry
ALL_PLATFORMS_NAME = 'All'

# Color tag -> display hex
PLATFORM_COLORS = {
    # Brand colors
    'tiktok': '#EE1D52',
    'instagram': '#C13584',
    'facebookblue': '#1877F2',
    # Standard colors
    'pink': '#FF2D55',
    'purple': '#AF52DE',
    'blue': '#007AFF',
    'orange': '#FF9500',
    'green': '#34C759',
    'red': '#FF3B30',
    'yellow': '#FFCC00',
    'cyan': '#32ADE6',
    'indigo': '#5856D6',
    'mint': '#00C7BE',
    'teal': '#30B0C7',
    'brown': '#A2845E',
    'gray': '#8E8E93',
}
DEFAULT_COLOR_HEX = PLATFORM_COLORS['gray']

CUSTOM_PLATFORM_ICON = 'star.fill'

# (name, icon, color) for the built-in platforms, in display order
BUILTIN_PLATFORMS = (
    ('TikTok', 'music.note', 'tiktok'),
    ('Instagram', 'camera.fill', 'instagram'),
    ('Facebook', 'f.square.fill', 'facebookblue'),
)


def new_id() -> str:
    """Generate a new opaque identifier."""
    return str(uuid.uuid4()).upper()


class Platform(Base):
    """Sales channel (TikTok, Instagram, Facebook or user-defined)."""

    __tablename__ = 'platform'

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    icon = Column(String(100), nullable=False, default=CUSTOM_PLATFORM_ICON)
    color = Column(String(40), nullable=False, default='gray')
    is_custom = Column(Boolean, nullable=False, default=False)
    position = Column(Integer, nullable=False, default=0)

    def __init__(self, **kwargs):
        kwargs.setdefault('id', new_id())
        kwargs.setdefault('icon', CUSTOM_PLATFORM_ICON)
        kwargs.setdefault('color', 'gray')
        kwargs.setdefault('is_custom', False)
        kwargs.setdefault('position', 0)
        super().__init__(**kwargs)

    @validates('name')
    def validate_name(self, key, value):
        if value is None or not str(value).strip():
            raise ValidationError('Platform name is required', field='name')
        return str(value).strip()

    @property
    def color_hex(self) -> str:
        return PLATFORM_COLORS.get(self.color, DEFAULT_COLOR_HEX)

    @classmethod
    def builtins(cls):
        """Build fresh instances of the default platforms."""
        return [
            cls(name=name, icon=icon, color=color, is_custom=False, position=index)
            for index, (name, icon, color) in enumerate(BUILTIN_PLATFORMS)
        ]

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'icon': self.icon,
            'color': self.color,
            'color_hex': self.color_hex,
            'is_custom': bool(self.is_custom),
        }

    def __repr__(self):
        return f"<Platform(id={self.id}, name='{self.name}', custom={self.is_custom})>"
