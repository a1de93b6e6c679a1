from fastapi.templating import Jinja2Templates
from app.core.config import TEMPLATES_DIR
from app.utils import filters

templates = Jinja2Templates(directory=TEMPLATES_DIR)

# register filters globally
templates.env.filters["coord"] = filters.coord
templates.env.filters["distance"] = filters.distance
templates.env.filters["duration"] = filters.duration
