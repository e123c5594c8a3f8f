import uvicorn

from catalog_service.config.logger_config import log
from catalog_service.main import app

if __name__ == "__main__":
    APP_HOST = "0.0.0.0"
    APP_PORT = 8012
    log.info("Starting catalog-service on {}:{}", APP_HOST, APP_PORT)
    uvicorn.run(app, host=APP_HOST, port=APP_PORT)
