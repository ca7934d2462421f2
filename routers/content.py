#backend/routers/content.py
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from security import check_api_key
from agents.content import (
    AssetContent, SeoSuggestions, PostIdea, ContentGenerationError,
    generate_asset_content, generate_seo_suggestions, generate_post_from_idea,
)

router = APIRouter(prefix="/api", tags=["content"])

class PromptIn(BaseModel):
    prompt: str

class UrlIn(BaseModel):
    url: str

class IdeaIn(BaseModel):
    title: str
    description: str

@router.post("/generate-asset-content", response_model=AssetContent, dependencies=[Depends(check_api_key)])
def asset_content(payload: PromptIn):
    if not payload.prompt.strip():
        raise HTTPException(400, "Missing required field: prompt")
    try:
        return generate_asset_content(payload.prompt.strip())
    except ContentGenerationError as e:
        raise HTTPException(500, str(e))

@router.post("/generate-seo", response_model=SeoSuggestions, dependencies=[Depends(check_api_key)])
def seo(payload: UrlIn):
    if not payload.url.strip():
        raise HTTPException(400, "Missing required field: url")
    try:
        return generate_seo_suggestions(payload.url.strip())
    except ContentGenerationError as e:
        raise HTTPException(500, str(e))

@router.post("/generate-post-from-idea", response_model=PostIdea, dependencies=[Depends(check_api_key)])
def post_from_idea(payload: IdeaIn):
    if not payload.title.strip() or not payload.description.strip():
        raise HTTPException(400, "Missing required fields: title, description")
    try:
        return generate_post_from_idea(payload.title.strip(), payload.description.strip())
    except ContentGenerationError as e:
        raise HTTPException(500, str(e))
