from app.models.user import User  # noqa: F401
from app.models.friend_edge import FriendEdge  # noqa: F401
from app.models.friend_request import FriendRequest  # noqa: F401
