import os

DEFAULT_PORT = 50051
DEFAULT_HTTP_PORT = 8080
DEFAULT_N_REDUCE = 10

# A dispatched task that has not been reported within this many seconds
# is presumed abandoned and becomes eligible for re-dispatch.
TASK_TIMEOUT = 10.0

DEFAULT_MASTER_ADDRESS = f'localhost:{DEFAULT_PORT}'
DEFAULT_STATUS_URL = f'http://localhost:{DEFAULT_HTTP_PORT}/status'


def master_address(override=None):
    """Resolve the coordinator address: explicit flag, then MASTER_ADDRESS."""
    return override or os.environ.get('MASTER_ADDRESS') or DEFAULT_MASTER_ADDRESS


def status_url(override=None):
    return override or os.environ.get('MASTER_HTTP_URL') or DEFAULT_STATUS_URL


def log_level(override=None):
    return (override or os.environ.get('MRCOORD_LOG_LEVEL') or 'INFO').upper()
