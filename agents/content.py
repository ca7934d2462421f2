# backend/agents/content.py
from __future__ import annotations

import os
import logging
from typing import List

from pydantic import BaseModel, ValidationError

from common.llm import generate_json, has_api_key

log = logging.getLogger("agents.content")

BRAND_NAME = os.getenv("BRAND_NAME", "Nadanaloga")
BRAND_SITE = os.getenv("BRAND_SITE", "www.nadanaloga.com")
BRAND_DESCRIPTION = os.getenv("BRAND_DESCRIPTION", "an Indian classical dance school")


class AssetContent(BaseModel):
    name: str
    description: str
    hashtags: List[str] = []


class BlogIdea(BaseModel):
    title: str
    description: str


class SeoSuggestions(BaseModel):
    meta_title: str
    meta_description: str
    keywords: List[str] = []
    blog_ideas: List[BlogIdea] = []


class PostIdea(BaseModel):
    post_text: str
    image_prompt: str
    hashtags: List[str] = []


class ContentGenerationError(Exception):
    pass


def _brand() -> str:
    return f"'{BRAND_NAME}' ({BRAND_SITE}), {BRAND_DESCRIPTION}"


def _clean_tags(tags: List[str]) -> List[str]:
    return [t.strip().lstrip("#") for t in tags if t and t.strip().lstrip("#")]


def _run(model_cls, system: str, user: str, schema_hint: dict, what: str):
    try:
        data = generate_json(system, user, schema_hint=schema_hint, temperature=0.7)
        return model_cls(**data)
    except (ValidationError, ValueError) as e:
        log.warning("Respuesta inválida del modelo (%s): %s", what, e)
        raise ContentGenerationError(f"Failed to generate {what}: invalid model response") from e
    except Exception as e:
        log.exception("Error generando %s: %s", what, e)
        raise ContentGenerationError(f"Failed to generate {what}: {e}") from e


def generate_asset_content(prompt: str) -> AssetContent:
    if not has_api_key():
        return AssetContent(
            name=f'Mock Title for "{prompt}"',
            description=f'This is a mock description for a media asset about "{prompt}". It\'s engaging and fun! #mock',
            hashtags=["mock", "asset", "generated", "data"],
        )
    system = (
        f"You are a creative social media expert for {_brand()}. Generate content for a single media "
        "asset based on the user's prompt: a catchy name/title, an engaging description and 5-7 "
        "relevant hashtags without the '#' symbol. The tone should be artistic and inspiring."
    )
    out = _run(AssetContent, system, f'Generate content for this media asset idea: "{prompt}"',
               {"name": "", "description": "", "hashtags": [""]}, "asset content")
    out.hashtags = _clean_tags(out.hashtags)
    return out


def generate_seo_suggestions(url: str) -> SeoSuggestions:
    if not has_api_key():
        return SeoSuggestions(
            meta_title=f"Mock: {BRAND_NAME} - {BRAND_DESCRIPTION}",
            meta_description=f"Discover {BRAND_NAME}. Join our classes in-person or online. For all ages and levels.",
            keywords=["mock", BRAND_NAME.lower(), "classes", "online classes"],
            blog_ideas=[
                BlogIdea(title="Getting Started", description="A beginner's guide to what we teach."),
                BlogIdea(title="Top 5 Benefits of Learning With Us", description="Physical and mental benefits for students."),
            ],
        )
    system = (
        f"You are an expert SEO consultant for {_brand()}. Analyze the provided website URL and generate "
        "practical, actionable SEO improvements: a meta title under 60 characters, a meta description "
        "under 160 characters, 8-10 keywords and 3-4 blog post ideas."
    )
    return _run(
        SeoSuggestions, system, f"Please provide SEO suggestions for the website: {url}.",
        {"meta_title": "", "meta_description": "", "keywords": [""], "blog_ideas": [{"title": "", "description": ""}]},
        "SEO suggestions",
    )


def generate_post_from_idea(title: str, description: str) -> PostIdea:
    if not has_api_key():
        return PostIdea(
            post_text=f'Check out our new blog post: "{title}"! We dive deep into {description.lower()}. Learn more on our website!',
            image_prompt=f'A mock image prompt for a blog post about "{title}"',
            hashtags=["mock", "blog", "newpost", BRAND_NAME.lower(), "seo"],
        )
    system = (
        f"You are a social media marketing expert for {_brand()}. "
        "Turn a blog post idea into a promotional social media post."
    )
    user = (
        f'Blog Post Title: "{title}"\nBlog Post Description: "{description}"\n\n'
        "Generate a short, engaging caption, a detailed prompt for an AI image generator and "
        "5-7 relevant hashtags without the '#' symbol."
    )
    out = _run(PostIdea, system, user, {"post_text": "", "image_prompt": "", "hashtags": [""]}, "post from idea")
    out.hashtags = _clean_tags(out.hashtags)
    return out
