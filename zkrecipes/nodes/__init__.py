"""Demo nodes yang menjalankan recipes"""

from .base_node import BaseNode
from .mailbox_node import MailboxNode
from .pool_node import PoolNode

__all__ = ['BaseNode', 'MailboxNode', 'PoolNode']
