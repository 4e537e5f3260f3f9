"""
Logging configuration for tmxcon.

Provides centralized logging setup with appropriate levels and formatting.
Library modules only ask for loggers; the build tool decides where output goes.
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool = False, debug: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure logging for a tmxcon build run.
    
    Args:
        verbose: If True, show INFO level messages
        debug: If True, show DEBUG level messages (implies verbose)
        log_file: Optional path that receives a copy of every message
    
    Returns:
        The 'tmxcon' logger
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
    
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True  # Replace handlers left over from a previous run
    )
    
    logger = logging.getLogger('tmxcon')
    logger.setLevel(level)
    
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger for a tmxcon module ('tmxcon.<name>').
    
    Args:
        name: Optional module name (defaults to 'tmxcon')
    """
    if name:
        return logging.getLogger(f'tmxcon.{name}')
    return logging.getLogger('tmxcon')
