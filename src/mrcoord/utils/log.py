import logging

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level='INFO'):
    """Install the process-wide log format used by the command line tools."""
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
