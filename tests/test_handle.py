"""StoredObject: defaults overlay, save/delete through the bound client."""

import json

import pytest

from remotestore import DecodeError, StoredObject


@pytest.mark.asyncio
async def test_missing_key_starts_from_defaults(make_client):
    async with make_client() as store:
        obj = await store.handle("settings.json", {"theme": "dark", "size": 10})
    assert isinstance(obj, StoredObject)
    assert obj.data == {"theme": "dark", "size": 10}


@pytest.mark.asyncio
async def test_stored_fields_win_over_defaults(make_client, fake_store):
    fake_store.values["settings.json"] = b'{"theme":"light","extra":true}'
    async with make_client() as store:
        obj = await store.handle("settings.json", {"theme": "dark", "size": 10})
    assert obj.data == {"theme": "light", "size": 10, "extra": True}
    assert obj["theme"] == "light"
    assert obj.get("missing", 5) == 5
    assert "size" in obj


@pytest.mark.asyncio
async def test_save_writes_only_data(make_client, fake_store):
    async with make_client() as store:
        obj = await store.handle("user.json", {"name": "ada"})
        obj["visits"] = 3
        assert await obj.save() == "user.json"
    saved = json.loads(fake_store.values["user.json"])
    assert saved == {"name": "ada", "visits": 3}
    assert fake_store.last.method == "PUT"


@pytest.mark.asyncio
async def test_save_works_for_any_key_suffix(make_client, fake_store):
    async with make_client() as store:
        obj = await store.handle("profile", {"a": 1})
        await obj.save()
        again = await store.handle("profile")
    assert fake_store.values["profile"] == b'{"a":1}'
    assert again.data == {"a": 1}


@pytest.mark.asyncio
async def test_delete_removes_remote_and_clears_local(make_client, fake_store):
    fake_store.values["gone.json"] = b'{"x":1}'
    async with make_client() as store:
        obj = await store.handle("gone.json")
        assert await obj.delete() == "gone.json"
    assert "gone.json" not in fake_store.values
    assert obj.data == {}
    assert fake_store.last.method == "DELETE"


@pytest.mark.asyncio
async def test_refresh_replaces_local_data(make_client, fake_store):
    fake_store.values["c.json"] = b'{"n":1}'
    async with make_client() as store:
        obj = await store.handle("c.json", {"local": True})
        fake_store.values["c.json"] = b'{"n":2}'
        await obj.refresh()
    assert obj.data == {"n": 2}


@pytest.mark.asyncio
async def test_non_object_value_is_decode_error(make_client, fake_store):
    fake_store.values["list.json"] = b"[1,2,3]"
    async with make_client() as store:
        with pytest.raises(DecodeError):
            await store.handle("list.json")


def test_bindings_not_in_repr(make_client):
    obj = StoredObject(key="k.json", client=make_client(), data={"a": 1})
    assert "client" not in repr(obj)
    assert obj == StoredObject(key="k.json", client=None, data={"a": 1})
