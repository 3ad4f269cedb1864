import asyncio
import os
import uuid

from mongo_notification import open_channel

MONGO_URL = os.environ.get("MONGO_URL", "mongodb://localhost:27017/notifications")


async def main():
    # producers never need the tail
    channel = await open_channel({"url": MONGO_URL, "topic": "orders", "writeOnly": True})
    try:
        for amount in (9.99, 19.99, 4.50):
            ack = await channel.emit("order", {"order_id": str(uuid.uuid4()), "amount": amount, "currency": "USD"})
            print("Published:", ack.inserted_id)
        # tells subscribers nothing else is coming
        await channel.emit("EOT", {})
    finally:
        await channel.close()

if __name__ == "__main__":
    asyncio.run(main())
