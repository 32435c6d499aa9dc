"""Provides application for development purposes."""

import logging
import os

from diarywewrite.app_logging import setup_logger
from diarywewrite.factory import create_web_app
from diarywewrite.services import users

logger = logging.getLogger(__name__)

app = create_web_app()
setup_logger(app.config['LOGLEVEL'])
with app.app_context():
    users.create_all()

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 3000))
    logger.info('Server started on port %s', port)
    app.run(port=port)
