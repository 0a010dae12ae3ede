# gunicorn.conf.py
import os

# Render sets $PORT automatically
bind = f"0.0.0.0:{os.getenv('PORT', '8000')}"

# Timer state lives in the database (open-entry unique index + versioned
# updates), so several workers can serve the same entry.
workers = int(os.getenv("WEB_CONCURRENCY", "2"))
threads = int(os.getenv("GUNICORN_THREADS", "2"))

timeout = int(os.getenv("GUNICORN_TIMEOUT", "60"))
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOGLEVEL", "info")
