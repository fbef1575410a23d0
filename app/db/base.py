from app.db.base_class import Base

# Import ALL models so SQLAlchemy registers them
from app.models.user import User  # noqa: F401
from app.models.friendship import Friendship  # noqa: F401
from app.models.chat_room import ChatRoom  # noqa: F401
from app.models.chat_room_member import ChatRoomMember  # noqa: F401
from app.models.message import Message  # noqa: F401
