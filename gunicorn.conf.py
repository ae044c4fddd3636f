"""Gunicorn configuration for the Gestar Salud Portal API."""

import os
from app.settings.v1.settings import SETTINGS

bind = os.getenv("BIND", "0.0.0.0:8000")
worker_class = "uvicorn.workers.UvicornWorker"
wsgi_app = "main:app"

# Login attempts and inactivity timers live in worker memory and are only
# seen by the worker that recorded them; WEB_CONCURRENCY defaults to 1
workers = SETTINGS.GENERAL.WEB_CONCURRENCY

# Document AI, Gemini and OneDrive syncs can run for a couple of minutes
timeout = 180
graceful_timeout = 30
keepalive = 5

# Multipart uploads of back-office cases carry up to MAX_FILES_PER_CASE files
limit_request_line = 8190
tmp_upload_dir = "/tmp"

accesslog = "-"
errorlog = "-"
loglevel = SETTINGS.GENERAL.LOG_LEVEL.lower()
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s %(D)sus'

proc_name = "gestar-salud-portal-api"

# Vercel / reverse proxy terminates TLS
forwarded_allow_ips = "*"
secure_scheme_headers = {"X-FORWARDED-PROTO": "https"}

raw_env = [f'TZ={os.getenv("TZ", "America/Bogota")}']


def when_ready(server):
    server.log.info(f"{SETTINGS.GENERAL.APP_NAME} ready with {workers} workers")
    if workers > 1:
        server.log.warning(
            "More than one worker: inactivity timeouts and login lockouts are not shared between workers"
        )


def post_fork(server, worker):
    server.log.info(f"Worker {worker.pid} spawned")


def worker_exit(server, worker):
    server.log.info(f"Worker {worker.pid} exited, its sessions and login lockouts are dropped")


if SETTINGS.GENERAL.PRODUCTION:
    preload_app = True
else:
    workers = 1
    reload = True
