from datetime import datetime

from app.core.config import settings
from app.scheduling.config import SchedulingConfig


def get_scheduling_config() -> SchedulingConfig:
    return settings.scheduling_config()


# reloj inyectable: los tests lo pisan con una fecha fija
def get_now() -> datetime:
    return datetime.now()
