import asyncio
from uuid import uuid4

from app.utils.locks import ProjectLockRegistry


async def test_idle_locks_are_dropped():
    registry = ProjectLockRegistry()

    for _ in range(50):
        async with registry.hold("versions", uuid4()):
            assert len(registry) == 1

    assert len(registry) == 0


async def test_lock_serialises_holders_and_survives_waiters():
    registry = ProjectLockRegistry()
    project_id = uuid4()
    order = []
    release = asyncio.Event()

    async def first():
        async with registry.hold("workflow", project_id):
            order.append("first in")
            await release.wait()
            order.append("first out")

    async def second():
        async with registry.hold("workflow", project_id):
            order.append("second in")

    first_task = asyncio.create_task(first())
    await asyncio.sleep(0)
    second_task = asyncio.create_task(second())
    await asyncio.sleep(0)

    assert order == ["first in"]
    assert len(registry) == 1

    release.set()
    await asyncio.gather(first_task, second_task)

    assert order == ["first in", "first out", "second in"]
    assert len(registry) == 0


async def test_namespaces_are_independent():
    registry = ProjectLockRegistry()
    project_id = uuid4()

    async with registry.hold("workflow", project_id):
        async with registry.hold("versions", project_id):
            assert len(registry) == 2

    assert len(registry) == 0
