from contextlib import asynccontextmanager
import traceback

from collectr_importer.utils.errors import ImporterError
from collectr_importer.utils.logger import step_logger


@asynccontextmanager
async def step(label: str, logger=step_logger):
    try:
        if logger:
            logger.info(f"------------- Step: {label} -------------")
        yield
    except ImporterError as e:
        if logger:
            logger.error(f"❌ Error in step -------'{label}'------- : {e.message}")
        raise
    except Exception as e:
        if logger:
            logger.error(f"❌ Error in step -------'{label}'------- : {type(e).__name__} - {e}")
            logger.debug(traceback.format_exc())
        raise ImporterError(f"Failed in step: {label}") from e
