"""
Registry mapping simple string keys to concrete component classes.
Used by pipeline_factory to perform lightweight dependency injection.
"""

from typing import Callable, Dict, Type

from adapters.db.base import DBAdapter
from adapters.db.postgres_adapter import PostgresAdapter
from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.llm.base import CompletionService
from adapters.llm.openai_provider import OpenAIProvider
from nql.validator import LexicalValidator, SQLValidator, SqlglotValidator

# validator factories take the SQL dialect of the active adapter
VALIDATORS: Dict[str, Callable[[str], SQLValidator]] = {
    "lexical": lambda dialect: LexicalValidator(),
    "sqlglot": lambda dialect: SqlglotValidator(dialect=dialect),
}
ADAPTERS: Dict[str, Type[DBAdapter]] = {
    "sqlite": SQLiteAdapter,
    "postgres": PostgresAdapter,
}
PROVIDERS: Dict[str, Type[CompletionService]] = {"openai": OpenAIProvider}
