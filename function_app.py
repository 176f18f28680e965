import os
import logging
import azure.functions as func

from src.function_blueprints.http_research import bp as research_bp

app = func.FunctionApp()
app.register_functions(research_bp)


def _configure_logging() -> None:
    lvl = (os.getenv("AZURE_SDK_LOG_LEVEL") or "").upper()
    if lvl:
        level = getattr(logging, lvl, logging.INFO)
        logging.getLogger("azure").setLevel(level)
        logging.getLogger("azure.ai.agents").setLevel(level)
    logging.getLogger("contentresearch").setLevel(logging.INFO)


_configure_logging()
