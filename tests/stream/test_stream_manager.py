"""
Tests for the WebSocket stream manager, using an in-memory socket.
"""

import asyncio
import json

from starlette.websockets import WebSocketState

from core.websocket import StreamManager
from tracking_service.models import EventBroadcaster, Subscription


class FakeWebSocket:
    """Just enough of a WebSocket for StreamManager.serve."""

    def __init__(self):
        self.client_state = WebSocketState.CONNECTING
        self.incoming = asyncio.Queue()
        self.sent = []
        self.close_codes = []

    async def accept(self):
        self.client_state = WebSocketState.CONNECTED

    async def send_text(self, data):
        self.sent.append(json.loads(data))

    async def receive_text(self):
        return await self.incoming.get()

    async def close(self, code=1000):
        self.client_state = WebSocketState.DISCONNECTED
        self.close_codes.append(code)


async def start_serving(manager, broadcaster, websocket, subscription):
    async def attach(sub):
        broadcaster.attach(sub)

    async def detach(sub):
        return broadcaster.detach(sub)

    serving = asyncio.create_task(manager.serve(
        websocket,
        subscription,
        attach=attach,
        detach=detach,
        serialize=dict
    ))
    while not websocket.sent:
        await asyncio.sleep(0)
    # Let the pump and receive tasks reach their first wait
    await asyncio.sleep(0)
    return serving


def sent_types(websocket):
    return [message["type"] for message in websocket.sent]


def test_unsubscribe_ends_stream():
    async def scenario():
        manager = StreamManager()
        broadcaster = EventBroadcaster()
        websocket = FakeWebSocket()
        subscription = Subscription(name="ws_unsubscribe")

        serving = await start_serving(manager, broadcaster, websocket, subscription)
        assert manager.connection_count == 1

        broadcaster.publish({"repetitions": 1})
        while len(websocket.sent) < 2:
            await asyncio.sleep(0)

        await websocket.incoming.put(json.dumps({"type": "unsubscribe"}))
        await asyncio.wait_for(serving, timeout=1)
        return manager, broadcaster, websocket

    manager, broadcaster, websocket = asyncio.run(scenario())

    assert sent_types(websocket) == ["subscribed", "tick_update", "unsubscribed"]
    assert websocket.sent[1]["payload"] == {"repetitions": 1}
    assert websocket.close_codes == [1000]
    assert broadcaster.subscriber is None
    assert manager.connection_count == 0


def test_cancelled_serve_cleans_up():
    async def scenario():
        manager = StreamManager()
        broadcaster = EventBroadcaster()
        websocket = FakeWebSocket()
        subscription = Subscription(name="ws_cancelled")

        serving = await start_serving(manager, broadcaster, websocket, subscription)
        serving.cancel()
        try:
            await serving
        except asyncio.CancelledError:
            pass

        leftover = [
            task.get_coro().__name__
            for task in asyncio.all_tasks()
            if task is not asyncio.current_task()
        ]
        return manager, broadcaster, websocket, subscription, leftover

    manager, broadcaster, websocket, subscription, leftover = asyncio.run(scenario())

    assert leftover == []
    assert subscription.closed
    assert broadcaster.subscriber is None
    assert manager.connection_count == 0
    assert websocket.close_codes == [1000]


def test_replaced_subscription_closes_socket():
    async def scenario():
        manager = StreamManager()
        broadcaster = EventBroadcaster()
        websocket = FakeWebSocket()

        serving = await start_serving(manager, broadcaster, websocket, Subscription(name="ws_first"))
        broadcaster.attach(Subscription(name="ws_second"))
        await asyncio.wait_for(serving, timeout=1)
        return broadcaster, websocket

    broadcaster, websocket = asyncio.run(scenario())

    assert websocket.close_codes == [1000]
    assert broadcaster.subscriber.name == "ws_second"
