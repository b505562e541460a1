# gunicorn.conf.py
# Gunicorn configuration file

import logging
import os

# Binding
bind = f"0.0.0.0:{os.environ.get('PORT', '10000')}"

# Logging
accesslog = '-'  # Log to stdout
errorlog = '-'   # Log to stderr
loglevel = 'info'

# Worker configuration
# Threads share the worker's token cache, so one token exchange serves them all
workers = 1
worker_class = 'gthread'
threads = int(os.environ.get('GUNICORN_THREADS', '4'))
timeout = 120

# Server mechanics
daemon = False
pidfile = None
umask = 0
user = None
group = None
tmp_upload_dir = None

# Hooks
def post_worker_init(worker):
    """
    Called after a worker has been forked and its app loaded.
    Warms the worker's token cache so the first request skips the exchange.
    """
    logger = logging.getLogger(__name__)

    catalog = getattr(worker.wsgi, 'extensions', {}).get('catalog')
    if catalog is None:
        return

    try:
        catalog.token_cache.get_token()
        logger.info(f"Spotify token cache warmed in worker PID {os.getpid()}")
    except Exception as e:
        # The first request will try again and report the failure
        logger.warning(f"Could not warm Spotify token cache in worker PID {os.getpid()}: {e}")
