"""Manual smoke test against a running relay: ``python smoke_chat.py [conversation_id]``."""
import asyncio
import json
import sys

import websockets


async def smoke(conversation_id: str) -> None:
    url = f"ws://localhost:8080/ws/chat/{conversation_id}?token=demo"
    async with websockets.connect(url) as ws:
        # connection_established, then history
        print(f"Connected: {await ws.recv()}")
        print(f"History: {await ws.recv()}")

        await ws.send(json.dumps({
            "type": "message",
            "message": "Hello from Python!",
            "temp_id": "smoke-1",
        }))

        # Only the ack comes back; the message itself goes to other participants
        print(f"Ack: {await ws.recv()}")


if __name__ == "__main__":
    asyncio.run(smoke(sys.argv[1] if len(sys.argv) > 1 else "smoke-room"))
