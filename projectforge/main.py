"""FastAPI backend for Project Forge."""

from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import CORS_ORIGINS, KNOWLEDGE_FILE
from .errors import ValidationError
from .knowledge import KnowledgeBase
from .log import get_logger
from .models import EXPERTISE_SUGGESTIONS, GenerateProjectRequest, KnowledgeImportRequest
from .orchestrator import AgentOrchestrator
from .pipeline import run_pipeline, validate_request
from .web_search import WebSearchAgent

logger = get_logger(__name__)

app = FastAPI(title="Project Forge API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Process-lifetime state shared by every request
knowledge_base = KnowledgeBase()
web_search = WebSearchAgent()

if KNOWLEDGE_FILE:
    knowledge_base.load(KNOWLEDGE_FILE)


def _persist_knowledge():
    if KNOWLEDGE_FILE:
        knowledge_base.save(KNOWLEDGE_FILE)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _error(400, "Invalid request body")


@app.get("/")
async def root():
    return {"status": "ok", "service": "Project Forge API"}


@app.get("/api/expertise")
async def list_expertise():
    return {"suggestions": EXPERTISE_SUGGESTIONS}


@app.post("/api/generate-project")
async def generate_project(request: GenerateProjectRequest):
    """Run the four-stage pipeline and publish the results."""
    try:
        return await run_pipeline(request)
    except ValidationError as e:
        return _error(400, str(e))
    except Exception as e:
        logger.exception("Error generating project")
        return _error(500, str(e) or "Failed to generate project")


@app.post("/api/orchestrate-project")
async def orchestrate_project(request: GenerateProjectRequest):
    """Agentic generation: analysis, research, generation, validation and enhancement."""
    try:
        validate_request(request)
        orchestrator = AgentOrchestrator(knowledge_base, web_search=web_search)
        result = await orchestrator.orchestrate_project_generation(
            request.project_idea,
            request.contributors,
            request.special_instructions,
        )
        _persist_knowledge()
        return result
    except ValidationError as e:
        return _error(400, str(e))
    except Exception as e:
        logger.exception("Error orchestrating project")
        return _error(500, str(e) or "Failed to generate project")


@app.get("/api/knowledge")
async def get_knowledge() -> Dict[str, Any]:
    return {
        "stats": knowledge_base.get_knowledge_stats(),
        "knowledge": knowledge_base.export_knowledge(),
    }


@app.post("/api/knowledge/import")
async def import_knowledge(request: KnowledgeImportRequest):
    knowledge_base.import_knowledge(request.model_dump(exclude_unset=True))
    _persist_knowledge()
    return {"status": "imported", "stats": knowledge_base.get_knowledge_stats()}


@app.delete("/api/knowledge")
async def clear_knowledge():
    knowledge_base.clear_knowledge()
    _persist_knowledge()
    return {"status": "cleared"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("projectforge.main:app", host="0.0.0.0", port=8001, reload=True)
