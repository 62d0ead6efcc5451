import logging
import os

from subscription_api import create_app
from subscription_api.extensions.database import close_database
from subscription_api.supervisor import ServerSupervisor

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = create_app()

if __name__ == "__main__":
    supervisor = ServerSupervisor(
        app,
        host=app.config["HOST"],
        port=int(app.config["PORT"]),
        grace_period_seconds=float(app.config["SHUTDOWN_GRACE_PERIOD_SECONDS"]),
        close_persistence=lambda: close_database(app),
    )
    supervisor.run()
