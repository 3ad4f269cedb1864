from .base import Collection, Connect, Database, TailCursor
