"""
Email List Service
==================

Run with:
    python app.py

Configuration comes from the environment or a .env file (see .env.example).
"""

import logging

from emaillist import create_app

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = create_app()


if __name__ == '__main__':
    port = app.config['PORT']
    if not app.config.get('API_KEY'):
        logger.warning("API_KEY is not set - /api/emails will reject every request")
    logger.info(f"Server is running on port {port}")
    app.run(host='0.0.0.0', port=port)
