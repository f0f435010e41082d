"""
Configuration manager untuk coordination recipes.
File ini membaca environment variables dan menyediakan
konfigurasi default untuk lock, queue, dan demo nodes.
"""

import os
from dotenv import load_dotenv

# Load environment variables dari .env file
load_dotenv()


class Config:
    """Class untuk manage semua konfigurasi sistem"""

    # Coordination service: 'memory' (in-process) atau 'zookeeper'
    COORDINATION_BACKEND: str = os.getenv('COORDINATION_BACKEND', 'memory')
    ZK_HOSTS: str = os.getenv('ZK_HOSTS', '127.0.0.1:2181')
    ZK_SESSION_TIMEOUT: float = float(os.getenv('ZK_SESSION_TIMEOUT', 10.0))
    ZK_CONNECT_TIMEOUT: float = float(os.getenv('ZK_CONNECT_TIMEOUT', 15.0))

    # Distributed lock
    LOCK_ROOT: str = os.getenv('LOCK_ROOT', '/locks')
    LOCK_PREFIX: str = os.getenv('LOCK_PREFIX', 'lock_')

    # Distributed bounded queue
    QUEUE_ROOT: str = os.getenv('QUEUE_ROOT', '/mailBox')
    QUEUE_PREFIX: str = os.getenv('QUEUE_PREFIX', 'letter_')
    QUEUE_CAPACITY: int = int(os.getenv('QUEUE_CAPACITY', 10))

    # Random delay (seconds) untuk simulasi pekerjaan producer / consumer
    PRODUCER_MAX_DELAY: float = float(os.getenv('PRODUCER_MAX_DELAY', 1.0))
    CONSUMER_MAX_DELAY: float = float(os.getenv('CONSUMER_MAX_DELAY', 1.0))

    # Pool demo: beberapa worker mengosongkan pool dengan bantuan lock
    POOL_ROOT: str = os.getenv('POOL_ROOT', '/msgPool')
    POOL_SIZE: int = int(os.getenv('POOL_SIZE', 10))
    POOL_WORKERS: int = int(os.getenv('POOL_WORKERS', 4))
    POOL_HOLD_TIME: float = float(os.getenv('POOL_HOLD_TIME', 1.0))

    # Node status server
    NODE_ID: int = int(os.getenv('NODE_ID', 1))
    NODE_HOST: str = os.getenv('NODE_HOST', 'localhost')
    NODE_PORT: int = int(os.getenv('NODE_PORT', 5000))

    # Logging
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE: str = os.getenv('LOG_FILE', '')

    @classmethod
    def display(cls):
        """Print semua konfigurasi untuk debugging"""
        print("=== Configuration ===")
        print(f"Node ID: {cls.NODE_ID}")
        print(f"Node Address: {cls.NODE_HOST}:{cls.NODE_PORT}")
        print(f"Backend: {cls.COORDINATION_BACKEND}")
        if cls.COORDINATION_BACKEND == 'zookeeper':
            print(f"ZooKeeper: {cls.ZK_HOSTS} (session timeout {cls.ZK_SESSION_TIMEOUT}s)")
        print(f"Lock: {cls.LOCK_ROOT}/{cls.LOCK_PREFIX}*")
        print(f"Queue: {cls.QUEUE_ROOT}/{cls.QUEUE_PREFIX}* (capacity {cls.QUEUE_CAPACITY})")
        print("=" * 30)


# Test configuration saat file dijalankan langsung
if __name__ == "__main__":
    Config.display()
