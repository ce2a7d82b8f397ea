import pytest

from clients.jellyfin import JellyfinClient
from core.cache import TTLCache
from core.errors import ValidationError
from tools import jellyfin as jellyfin_tool


class FakeJellyfin:
    def __init__(self):
        self.calls = []

    async def test_connection(self):
        self.calls.append("test_connection")
        return {"ServerName": "home", "Version": "10.9.0"}

    async def get_users(self):
        self.calls.append("get_users")
        return [
            {
                "Id": "u1",
                "Name": "alice",
                "Policy": {"IsAdministrator": True},
                "LastLoginDate": "2026-10-01T10:00:00Z",
            },
            {"Id": "u2", "Name": "bob"},
        ]

    async def get_user(self, user_id):
        self.calls.append(("get_user", user_id))
        return {"Id": user_id}

    async def get_activity_log(self, *, start_index=0, limit=50):
        self.calls.append(("get_activity_log", start_index, limit))
        return {"Items": [], "TotalRecordCount": 0}


@pytest.mark.asyncio
async def test_list_users_summarizes(dummy_mcp):
    jellyfin_tool.register(dummy_mcp, jellyfin=FakeJellyfin())

    out = await dummy_mcp.tools["jellyfin_list_users"]()

    assert out == [
        {
            "id": "u1",
            "name": "alice",
            "is_administrator": True,
            "is_disabled": False,
            "last_login": "2026-10-01T10:00:00Z",
        },
        {"id": "u2", "name": "bob", "is_administrator": False, "is_disabled": False, "last_login": None},
    ]


@pytest.mark.asyncio
async def test_get_user_forwards_id_to_client(dummy_mcp):
    fake = FakeJellyfin()
    jellyfin_tool.register(dummy_mcp, jellyfin=fake)

    out = await dummy_mcp.tools["jellyfin_get_user"](user_id="u1")

    assert out == {"Id": "u1"}
    assert fake.calls == [("get_user", "u1")]


@pytest.mark.asyncio
async def test_get_user_blank_id_rejected_by_client(dummy_mcp):
    client = JellyfinClient(base_url="http://jellyfin.local:8096")
    jellyfin_tool.register(dummy_mcp, jellyfin=client)

    with pytest.raises(ValidationError):
        await dummy_mcp.tools["jellyfin_get_user"](user_id="  ")


@pytest.mark.asyncio
async def test_system_info_memoized_in_app_cache(dummy_mcp):
    fake = FakeJellyfin()
    cache = TTLCache(name="app")
    jellyfin_tool.register(dummy_mcp, jellyfin=fake, cache=cache)

    first = await dummy_mcp.tools["jellyfin_system_info"]()
    second = await dummy_mcp.tools["jellyfin_system_info"]()

    assert first == second == {"ServerName": "home", "Version": "10.9.0"}
    assert fake.calls == ["test_connection"]
    assert cache.has(jellyfin_tool.SYSTEM_INFO_KEY)


@pytest.mark.asyncio
async def test_system_info_without_cache_hits_server(dummy_mcp):
    fake = FakeJellyfin()
    jellyfin_tool.register(dummy_mcp, jellyfin=fake)

    await dummy_mcp.tools["jellyfin_system_info"]()
    await dummy_mcp.tools["jellyfin_system_info"]()

    assert fake.calls == ["test_connection", "test_connection"]


@pytest.mark.asyncio
async def test_activity_log_forwards_paging(dummy_mcp):
    fake = FakeJellyfin()
    jellyfin_tool.register(dummy_mcp, jellyfin=fake)

    out = await dummy_mcp.tools["jellyfin_activity_log"](start_index=20, limit=10)

    assert out["TotalRecordCount"] == 0
    assert fake.calls == [("get_activity_log", 20, 10)]
