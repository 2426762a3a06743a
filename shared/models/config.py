from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    A single environment setting a client needs in order to work.

    Attributes:
        env_key (str): Raw key name; clients prefix it with their type and engine (e.g. "BASE_URL" → "RAG_QDRANT_BASE_URL").
        val_type (str): Expected type of the value: "string", "number", "bool" or "list".
        default (str | int | float | bool | list | None): Value used when the variable is unset. None marks the variable as required.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None
