from dotenv import load_dotenv

load_dotenv()

import uvicorn

from isyourdayok.app import create_app
from isyourdayok.infra.config.settings import settings

app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
