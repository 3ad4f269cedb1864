import asyncio
import os

from mongo_notification import open_channel

MONGO_URL = os.environ.get("MONGO_URL", "mongodb://localhost:27017/notifications")


async def main():
    channel = await open_channel({"url": MONGO_URL, "topic": "orders"})
    done = asyncio.Event()

    channel.on("order", lambda data: print("Received:", data))
    channel.on("error", lambda error: print("Tail error:", error))
    # close once the publisher's end marker comes through the tail
    channel.on("EOT", lambda _: channel.close(done.set))

    print("Awaiting messages... (press Ctrl+C to exit)")
    try:
        await done.wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        await channel.close()
    print("Closed.")

if __name__ == "__main__":
    asyncio.run(main())
