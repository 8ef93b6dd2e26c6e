"""
FastAPI backend for Ask REST Data.
Run locally: uvicorn app:app --reload
"""
from __future__ import annotations
import json
import uuid
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from pipeline.main import debug_parse, handle_prompt, insert_records, parse_question, run_query
from pipeline.schema import TABLES


# =============================================================================
# FASTAPI APP
# =============================================================================
app = FastAPI(
    title="Ask REST Data",
    description="Natural language interface for a Supabase/PostgREST data API",
    version="1.0.0",
)


def _decode_rows(data: str | None) -> Any:
    """Return the JSON body as Python data, or the raw text if it is not JSON."""
    if data is None:
        return None
    try:
        return json.loads(data)
    except json.JSONDecodeError:
        return data


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================
class QueryRequest(BaseModel):
    question: str


class ParseResponse(BaseModel):
    table: str
    query: str
    error: str | None = None


class QueryResponse(BaseModel):
    success: bool
    query_id: str | None = None
    table: str | None = None
    query: str | None = None
    data: Any = None
    error: str | None = None


class InsertResponse(BaseModel):
    success: bool
    data: Any = None
    error: str | None = None


class PromptRequest(BaseModel):
    prompt: str


class PromptResponse(BaseModel):
    response: str


def _require_text(value: str, field: str) -> str:
    if not value.strip():
        raise HTTPException(status_code=400, detail=f"{field} cannot be empty")
    return value


# =============================================================================
# ROUTES
# =============================================================================
@app.post("/api/query", response_model=QueryResponse)
async def query_data(req: QueryRequest):
    """Resolve a natural language question and return the matching rows."""
    question = _require_text(req.question, "Question")
    query_id = str(uuid.uuid4())
    result = await run_query(question)
    parse = result["parse"]

    if result.get("error"):
        return QueryResponse(
            success=False,
            query_id=query_id,
            table=parse["table"] or None,
            query=parse["query"] or None,
            error=result["error"],
        )

    return QueryResponse(
        success=True,
        query_id=query_id,
        table=parse["table"],
        query=parse["query"],
        data=_decode_rows(result["data"]),
    )


@app.post("/api/parse", response_model=ParseResponse)
async def parse_only(req: QueryRequest):
    """Show how a question would be translated, without fetching anything."""
    question = _require_text(req.question, "Question")
    parsed = await parse_question(question)
    return ParseResponse(**parsed.to_dict())


@app.post("/api/parse/debug")
async def parse_debug(req: QueryRequest):
    """Compare the LLM parse and the heuristic parse for the same question."""
    question = _require_text(req.question, "Question")
    return await debug_parse(question)


@app.post("/api/records/{table}", response_model=InsertResponse)
async def insert_rows(table: str, rows: list[dict] | dict):
    """Insert one record (object) or many (array) into a known table."""
    if table not in TABLES:
        raise HTTPException(status_code=404, detail=f"Unknown table '{table}'")
    result = await insert_records(table, rows)
    return InsertResponse(success=result.ok, data=_decode_rows(result.data), error=result.error)


@app.post("/api/prompt", response_model=PromptResponse)
async def prompt(req: PromptRequest):
    """Free-form prompt: database questions are answered from data, others by the chat model."""
    text = _require_text(req.prompt, "Prompt")
    return PromptResponse(response=await handle_prompt(text))


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "Ask REST Data"}


# =============================================================================
# MAIN
# =============================================================================
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
