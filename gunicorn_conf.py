import multiprocessing

from tasktracker.config import settings

# Gunicorn configuration file
# Run with: gunicorn -c gunicorn_conf.py tasktracker.main:app

bind = settings.bind

# Standard formula: (2 x num_cores) + 1, unless WORKERS is set
workers = settings.workers or multiprocessing.cpu_count() * 2 + 1
worker_class = "uvicorn.workers.UvicornWorker"

timeout = 120
keepalive = 5

# Application logs go through tasktracker.logging_setup; these are gunicorn's own
accesslog = "-"
errorlog = "-"
loglevel = settings.log_level.lower()

name = "tasktracker_api"
reload = False
