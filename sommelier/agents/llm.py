from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI

from sommelier.utils import logger
from sommelier.utils.env import ANTHROPIC_API_KEY, GOOGLE_API_KEY, OPENAI_API_KEY


def load_base_model(model_provider: str, model_name: str, **kwargs) -> BaseChatModel:
    """
    Loads the base LLM model based on the provider.

    Retries are left to the provider client: the agent loop never retries a failed model call.

    Args:
        model_provider (str): The model provider, e.g., "google", "openai", "anthropic".
        model_name (str): The name of the model to load.
        **kwargs: Additional keyword arguments to pass to the model constructor.

    Returns: An instance of the loaded chat model.
    """
    match model_provider.lower():
        case "google":
            if not GOOGLE_API_KEY:
                raise ValueError("GOOGLE_API_KEY not found in the environment.")
            model = ChatGoogleGenerativeAI(
                model=model_name,
                temperature=0.0,
                max_retries=2,
                google_api_key=GOOGLE_API_KEY,
                **kwargs,
            )
            logger.info(f"Loaded Google model successfully: {model_name}")
            return model
        case "openai":
            if not OPENAI_API_KEY:
                raise ValueError("OPENAI_API_KEY not found in the environment.")
            model = ChatOpenAI(
                model=model_name,
                temperature=0.0,
                max_retries=2,
                api_key=OPENAI_API_KEY,
                **kwargs,
            )
            logger.info(f"Loaded OpenAI model successfully: {model_name}")
            return model
        case "anthropic":
            if not ANTHROPIC_API_KEY:
                raise ValueError("ANTHROPIC_API_KEY not found in the environment.")
            model = ChatAnthropic(
                model=model_name,
                temperature=0.0,
                max_retries=2,
                api_key=ANTHROPIC_API_KEY,
                **kwargs,
            )
            logger.info(f"Loaded Anthropic model successfully: {model_name}")
            return model
        case _:
            raise ValueError(f"Unsupported model provider: {model_provider}")
