from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface


class ClientManager:
    """
    Instantiates the configured backend clients.

    Engines are read from EMBED_ENGINE, LLM_ENGINE and RAG_ENGINE and resolved
    to shared.clients.<type>.<engine>.<Type>Client<Engine> classes. The
    resulting clients are handed to the services explicitly; nothing here is
    a process-wide registry.
    """

    _CLASS_PREFIX = {"embed": "EmbedClient", "llm": "LLMClient", "rag": "RAGClient"}

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_embed_client(self) -> EmbedClientInterface:
        engine = self._normalize_engine(self.helper_config.get_string_val("EMBED_ENGINE", default="ollama"))
        return self._instantiate("embed", engine)

    def get_llm_client(self) -> LLMClientInterface:
        engine = self._normalize_engine(self.helper_config.get_string_val("LLM_ENGINE", default="ollama"))
        return self._instantiate("llm", engine)

    def get_rag_client(self) -> RAGClientInterface:
        engine = self._normalize_engine(self.helper_config.get_string_val("RAG_ENGINE", default="qdrant"))
        return self._instantiate("rag", engine)

    ##########################################
    ################ HELPER ##################
    ##########################################

    def _normalize_engine(self, engine: str) -> str:
        if not engine or not engine.strip():
            raise ValueError("Empty engine name in configuration.")
        # lowercase all and uppercase first letter, e.g. "QDRANT" → "Qdrant"
        return engine.strip().lower().capitalize()

    def _instantiate(self, client_type: str, engine: str) -> ClientInterface:
        """
        Import and instantiate the client class for the given type and engine.

        Raises:
            ValueError: If the engine is unsupported or cannot be imported.
        """
        class_name = f"{self._CLASS_PREFIX[client_type]}{engine}"
        try:
            module = __import__(
                f"shared.clients.{client_type}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported {client_type.upper()} engine specified: '{engine}'. Error: {e}")
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated %s client for engine: %s", client_type.upper(), engine)
        return client
