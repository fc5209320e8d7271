import asyncio

from conftest import FakeRecordStore, raw_request
from uc_core_lib.infrastructure.change_stream import RedisSnapshotSource
from uc_core_lib.infrastructure.redis_setup import parse_sentinel_hosts


class FakePubSub:
    def __init__(self, messages):
        self.messages = messages
        self.subscribed = []
        self.unsubscribed = []
        self.closed = False

    async def subscribe(self, channel):
        self.subscribed.append(channel)

    async def unsubscribe(self, channel):
        self.unsubscribed.append(channel)

    async def aclose(self):
        self.closed = True

    async def listen(self):
        for message in self.messages:
            yield message


class FakeRedis:
    def __init__(self, messages):
        self.pubsub_instance = FakePubSub(messages)

    def pubsub(self, ignore_subscribe_messages=False):
        return self.pubsub_instance


def test_initial_snapshot_then_requery_per_message():
    store = FakeRecordStore(documents={"requests": [raw_request("a")]})
    redis = FakeRedis([
        {"type": "message", "channel": "records:requests", "data": "changed"},
        {"type": "pong", "data": None},
        {"type": "message", "channel": "records:requests", "data": "changed"},
    ])
    source = RedisSnapshotSource(redis, store)

    async def collect():
        batches = []
        async for batch in source.subscribe("requests"):
            batches.append([record.id for record in batch])
            store.documents["requests"] = [raw_request("b")] + store.documents["requests"]
        return batches

    batches = asyncio.run(collect())

    assert batches == [["a"], ["b", "a"], ["b", "b", "a"]]
    assert store.log == [("query", "requests")] * 3
    pubsub = redis.pubsub_instance
    assert pubsub.subscribed == ["records:requests"]
    assert pubsub.unsubscribed == ["records:requests"]
    assert pubsub.closed


def test_channel_prefix():
    source = RedisSnapshotSource(FakeRedis([]), FakeRecordStore(), channel_prefix="ops")
    assert source.channel("leaks") == "ops:leaks"


def test_closing_subscription_early_releases_pubsub():
    store = FakeRecordStore(documents={"leaks": []})
    redis = FakeRedis([{"type": "message", "data": "x"}] * 5)
    source = RedisSnapshotSource(redis, store)

    async def first_only():
        stream = source.subscribe("leaks")
        batch = await stream.__anext__()
        await stream.aclose()
        return batch

    assert asyncio.run(first_only()) == []
    assert redis.pubsub_instance.closed


def test_parse_sentinel_hosts():
    assert parse_sentinel_hosts("s1:26379, s2:26380,,s3") == [
        ("s1", 26379),
        ("s2", 26380),
        ("s3", 26379),
    ]
    assert parse_sentinel_hosts("") == []
