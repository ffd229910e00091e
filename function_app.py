import os
import logging
import azure.functions as func

from ideacal.function_blueprints.http_batch_generate import bp as batch_generate_bp
from ideacal.function_blueprints.http_calendar import bp as calendar_bp
from ideacal.function_blueprints.http_ideas import bp as ideas_bp

app = func.FunctionApp()


def _configure_logging() -> None:
    lvl = (os.getenv("AZURE_SDK_LOG_LEVEL") or "").upper()
    if lvl:
        level = getattr(logging, lvl, logging.INFO)
        logging.getLogger("azure").setLevel(level)
        logging.getLogger("azure.cosmos").setLevel(level)
    logging.getLogger("ideacal").setLevel(logging.INFO)


_configure_logging()

app.register_functions(batch_generate_bp)
app.register_functions(ideas_bp)
app.register_functions(calendar_bp)
