"""Persistent bridge links between a room and a plugin token."""

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from marco_bridge.db.session import Base


class BridgeLink(Base):
    """One active bridge: the signed token and the room it unlocks."""

    __tablename__ = "bridging"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    # Unique so two concurrent bridge requests for a room cannot both land.
    room: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
