"""
Gunicorn configuration for the EPH competitions API.

Run with: gunicorn -c deploy/gunicorn.conf.py eph_backend.main:app
"""
import os
import multiprocessing

# Server socket
bind = os.environ.get("BIND", "0.0.0.0:8000")
backlog = 2048

# Worker processes
workers = int(os.environ.get("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
timeout = 120
graceful_timeout = 30
keepalive = 5

# Logging (stdout/stderr; the container runtime collects them)
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = "eph-backend"

# Server mechanics
daemon = False
pidfile = "/tmp/eph-backend.pid"

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190


def when_ready(server):
    server.log.info(f"eph-backend ready with {workers} worker(s) on {bind}")


def worker_int(worker):
    worker.log.info(f"Worker {worker.pid} interrupted")
