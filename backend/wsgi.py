import os

from payportal import create_app
from payportal.config import Config, DevelopmentConfig

app = create_app(DevelopmentConfig if os.environ.get("FLASK_DEBUG") == "1" else Config)

if __name__ == "__main__":
    app.run()
