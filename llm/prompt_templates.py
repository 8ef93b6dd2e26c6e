"""
Prompt templates for converting natural language requests into PostgREST queries.
"""
from pipeline.schema import describe_schema

NL_TO_QUERY_PROMPT = """You are a query generator for a PostgreSQL database accessed via the Supabase REST API.

Database schema:
{schema}

Convert natural language to Supabase PostgREST format:
- "select=*" for all columns
- "select=id,title" for specific columns
- "is_done=eq.true" for boolean filters
- "due_date=not.is.null" for non-null filters
- "due_date=is.null" for null filters
- "title=ilike.*search*" for text search (ALWAYS use asterisks * not percent signs %)
- "order=created_at.desc" for sorting, "limit=5" for limits

IMPORTANT: For text search, ALWAYS use asterisks (*) format: "title=ilike.*word*"
NEVER use percent signs (%) format: "title=ilike.%word%"
If the request is not a database query, set "table" and "query" to "" and explain in "error".

Respond ONLY with JSON in this exact format:
{{"table": "table_name", "query": "supabase_query_string", "error": null}}

Examples:
"get all todos" -> {{"table": "todos", "query": "select=*", "error": null}}
"show completed todos" -> {{"table": "todos", "query": "select=*&is_done=eq.true", "error": null}}
"find incomplete todos" -> {{"table": "todos", "query": "select=*&is_done=eq.false", "error": null}}
"show todos with title like dog" -> {{"table": "todos", "query": "select=*&title=ilike.*dog*", "error": null}}
"find todos containing work" -> {{"table": "todos", "query": "select=*&title=ilike.*work*", "error": null}}"""

USER_QUERY_TEMPLATE = "Parse this query: {query}"

GENERAL_CHAT_PROMPT = "You are a helpful assistant. Answer briefly."


def build_system_prompt() -> str:
    return NL_TO_QUERY_PROMPT.format(schema=describe_schema())


__all__ = ["NL_TO_QUERY_PROMPT", "USER_QUERY_TEMPLATE", "GENERAL_CHAT_PROMPT", "build_system_prompt"]
