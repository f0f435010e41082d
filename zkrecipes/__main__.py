"""
Main entry point untuk menjalankan demo nodes.

Contoh:
    python -m zkrecipes pool
    python -m zkrecipes mailbox --backend zookeeper
"""

import asyncio
import argparse
import logging
import sys

from zkrecipes.coordination.factory import create_client
from zkrecipes.exceptions import CoordinationError
from zkrecipes.nodes.mailbox_node import MailboxNode
from zkrecipes.nodes.pool_node import PoolNode
from zkrecipes.utils.config import Config


def setup_logging():
    """Setup logging configuration"""
    handlers = [logging.StreamHandler(sys.stdout)]
    if Config.LOG_FILE:
        handlers.append(logging.FileHandler(Config.LOG_FILE))

    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


async def run_node(node_type: str, backend: str):
    """
    Run specific node type.

    Args:
        node_type: Type of node to run (pool, mailbox)
        backend: Coordination backend (memory, zookeeper)
    """
    client = create_client(backend)
    node_id = Config.NODE_ID
    host = Config.NODE_HOST
    port = Config.NODE_PORT

    if node_type == 'pool':
        node = PoolNode(
            node_id, host, port, client,
            pool_root=Config.POOL_ROOT,
            capacity=Config.POOL_SIZE,
            lock_root=Config.LOCK_ROOT,
            lock_prefix=Config.LOCK_PREFIX,
            workers=Config.POOL_WORKERS,
            hold_time=Config.POOL_HOLD_TIME
        )
    elif node_type == 'mailbox':
        node = MailboxNode(
            node_id, host, port, client,
            root=Config.QUEUE_ROOT,
            prefix=Config.QUEUE_PREFIX,
            capacity=Config.QUEUE_CAPACITY,
            producer_delay=Config.PRODUCER_MAX_DELAY,
            consumer_delay=Config.CONSUMER_MAX_DELAY
        )
    else:
        print(f"Unknown node type: {node_type}")
        return

    await node.start()

    print(f"\n{'='*60}")
    print(f"  {node_type.upper()} NODE {node_id} STARTED")
    print(f"  Status: http://{host}:{port}/api/status")
    print(f"  Backend: {backend}")
    print(f"{'='*60}\n")

    try:
        if isinstance(node, PoolNode):
            await node.load(f"msg{i}" for i in range(Config.POOL_SIZE))
            consumed = await node.drain()
            print(f"\nPool drained: {len(consumed)} messages consumed")
        else:
            # Keep running
            while True:
                await asyncio.sleep(1)
    finally:
        await node.stop()


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description='Distributed lock and queue recipes')
    parser.add_argument(
        'node_type',
        choices=['pool', 'mailbox'],
        help='Type of node to run'
    )
    parser.add_argument(
        '--backend',
        choices=['memory', 'zookeeper'],
        default=Config.COORDINATION_BACKEND,
        help='Coordination service backend'
    )

    args = parser.parse_args()

    # Setup logging
    setup_logging()

    # Display configuration
    Config.COORDINATION_BACKEND = args.backend
    Config.display()

    # Run node
    try:
        asyncio.run(run_node(args.node_type, args.backend))
    except KeyboardInterrupt:
        print("\nExiting...")
    except CoordinationError as e:
        print(f"Coordination error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
