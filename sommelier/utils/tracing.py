from langfuse import Langfuse
from langfuse.langchain import CallbackHandler

from sommelier.utils.logger import logger
from sommelier.utils.env import LANGFUSE_PUBLIC_KEY, LANGFUSE_SECRET_KEY, LANGFUSE_HOST


def get_langfuse_callback() -> CallbackHandler | None:
    """Returns a Langfuse callback handler, or None if Langfuse cannot be reached."""
    try:
        Langfuse(
            public_key=LANGFUSE_PUBLIC_KEY,
            secret_key=LANGFUSE_SECRET_KEY,
            host=LANGFUSE_HOST,
        )
        langfuse_handler = CallbackHandler()
    except Exception as err:
        langfuse_handler = None
        logger.error(f"Cannot instantiate the Langfuse handler. Langfuse logging is disabled: {err}")

    return langfuse_handler
