import asyncio

from medlens.background import BackgroundWriter


async def test_flush_waits_for_pending_writes():
    writer = BackgroundWriter()
    written = []

    async def write():
        await asyncio.sleep(0.01)
        written.append("audit")

    writer.submit("audit", write)
    assert writer.pending == 1
    await writer.flush()
    assert written == ["audit"]
    assert writer.pending == 0


async def test_failed_write_is_logged_not_raised(caplog):
    writer = BackgroundWriter()

    async def write():
        raise OSError("disk full")

    writer.submit("audit", write)
    await writer.flush()
    assert "Background write audit failed" in caplog.text


async def test_flush_gives_up_after_timeout():
    writer = BackgroundWriter()
    writer.submit("slow", lambda: asyncio.sleep(1))
    await writer.flush(timeout=0.01)
    assert writer.pending == 1
