#!/usr/bin/env python3
"""
Quick example demonstrating home-statesync basic usage.

Run with: PYTHONPATH=src python3 example.py
"""

import asyncio
import logging

from home_statesync import MemoryStateBackend, ProcessingState, StateHandler, SyncConfig


def report(outcome: ProcessingState, entry) -> None:
    print(f"   ✓ {entry.label} -> {outcome.value}")


async def main() -> None:
    print("=" * 60)
    print("home-statesync Example")
    print("=" * 60)

    # 1. Backend and handler
    print("\n1. Creating backend and handler...")
    backend = MemoryStateBackend(ack_delay=0.2)
    backend.reject("hm-rpc.0.BROKEN.1.STATE", "device unreachable")
    handler = StateHandler(backend, SyncConfig(timeout=1.0, poll_interval=0.1, debug=False))
    print("   ✓ MemoryStateBackend (acks after 200 ms) and StateHandler created")

    # 2. Direct write: not an hm-rpc target
    print("\n2. Direct write...")
    result = await handler.write_value("javascript.0.variables.test", "1")
    print(f"   ✓ javascript.0.variables.test written directly (result={result})")

    # 3. Queued writes, not awaited
    print("\n3. Queueing writes without waiting...")
    handler.write_value("hm-rpc.0.ABC123.1.STATE", True, report)
    handler.write_value("hm-rpc.0.ABC123.2.LEVEL", 0.5, report)
    handler.write_value("hm-rpc.0.BROKEN.1.STATE", True, report)
    print(f"   ✓ Queue size: {handler.processor.queue_size}")

    # 4. Queued write, awaited
    print("\n4. Waiting for one write...")
    outcome = await handler.write_value("hm-rpc.0.ABC123.1.STATE", False, report)
    print(f"   ✓ Awaited write finished with: {outcome.value}")

    # 5. Barrier
    print("\n5. Waiting until idle...")
    await handler.wait_until_idle()
    print(f"   ✓ Processing: {handler.is_processing()}")

    print("\n" + "=" * 60)
    print("Example complete!")
    print("=" * 60)


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    asyncio.run(main())
