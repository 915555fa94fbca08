"""
Gunicorn configuration for NeSy Core production deployment.

Usage:
    gunicorn app.main:app -c gunicorn.conf.py

Seed catalogue, strictness and the fusion weight cache are process-local;
each worker loads them at startup and learned weights are shared through the
fusion_weights table.
"""

import multiprocessing

# Bind to all interfaces on port 8000
bind = "0.0.0.0:8000"

# Worker processes: CPU cores * 2 + 1 (Gunicorn recommendation)
workers = multiprocessing.cpu_count() * 2 + 1

# Use Uvicorn's ASGI worker for FastAPI
worker_class = "uvicorn.workers.UvicornWorker"

# Request timeout (seconds); generation is bounded by GENERATION_TIMEOUT well below this
timeout = 30

# Keep-alive connections (seconds)
keepalive = 5

# Logging
accesslog = "-"  # stdout
errorlog = "-"   # stderr
loglevel = "info"
