from core.security import create_access_token
from models.idea import Idea
from models.user import User
from services.match_store import create_if_absent


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def ws_url(user) -> str:
    return f"/ws?token={create_access_token(user.id)}"


class FakeSocket:
    """Stands in for a starlette WebSocket; records every frame pushed to it."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    def events(self, name=None):
        return [f for f in self.sent if name is None or f["event"] == name]


async def add_user(session_factory, name: str) -> User:
    async with session_factory() as db:
        user = User(name=name, email=f"{name.lower()}@example.com", avatar=f"https://img/{name}.png")
        db.add(user)
        await db.commit()
        return user


async def add_idea(session_factory, owner, name: str, active: bool = True) -> Idea:
    async with session_factory() as db:
        idea = Idea(
            owner_id=owner.id if owner else None,
            name=name,
            one_liner=f"{name} in one line",
            is_active=active,
        )
        db.add(idea)
        await db.commit()
        return idea


async def add_match(session_factory, user_a, user_b, idea):
    async with session_factory() as db:
        match, _ = await create_if_absent(db, user_a.id, user_b.id, idea.id)
        return match
