# ------------ Config ------------
DEFAULT_COLLECTION_SIZE = "1MB"   # capped collection size used at first creation
DEFAULT_DATABASE = "notifications"  # used when the url carries no database name

# size units accepted by parse_size, powers of 1024
SIZE_UNITS = {
    "b": 1,
    "kb": 1 << 10,
    "mb": 1 << 20,
    "gb": 1 << 30,
    "tb": 1 << 40,
}

TAIL_MAX_AWAIT_MS = 1000    # server-side await for each getMore on the tail
TAIL_RETRY_INTERVAL = 0.5   # seconds before reopening a dead tailable cursor
ERROR_EVENT = "error"       # local event carrying TailError / ShutdownError
# --------------------------------
