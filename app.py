"""
VANTA backend entry point.

Development:
  python app.py

Production (waitress):
  python scripts/run_production_server.py
"""
import logging

from vanta import create_app
from vanta.config.settings import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format='%(asctime)s | %(levelname)s | %(name)s | %(message)s'
)
logging.getLogger('urllib3').setLevel(logging.WARNING)

app = create_app(settings)


if __name__ == '__main__':
    app.logger.info("Starting VANTA backend on %s:%s", settings.HOST, settings.PORT)
    app.run(debug=False, host=settings.HOST, port=settings.PORT, threaded=True)
