# portalgen/services/template_designer.py
import json
import logging
from langchain_openai import ChatOpenAI
from langchain_core.prompts import ChatPromptTemplate
from typing import Dict, Optional

from portalgen.config import DESIGN_MODEL, OPENAI_API_KEY
from portalgen.schemas.job import CVContent

logger = logging.getLogger(__name__)

_llm: Optional[ChatOpenAI] = None


def _design_llm() -> ChatOpenAI:
    global _llm
    if _llm is None:
        _llm = ChatOpenAI(model=DESIGN_MODEL, temperature=0.3, api_key=OPENAI_API_KEY)
    return _llm


DESIGN_PROMPT = ChatPromptTemplate.from_messages([
    (
        "system",
        "You are an expert web portal designer. Create personalized content "
        "and customizations for professional web portals based on CV data."
    ),
    (
        "user",
        "Create personalized customizations for a web portal template.\n\n"
        "CV DATA:\n{cv}\n\n"
        "TEMPLATE: {template_name} ({template_id})\n"
        "REQUESTED THEME: {theme}\n\n"
        "Generate:\n"
        "1. Color scheme and branding based on industry/profession\n"
        "2. Content priorities and section ordering\n"
        "3. Messaging and tone\n\n"
        "Return ONLY JSON with the keys: theme, config, content."
    )
])


def parse_customization(response: str) -> Dict:
    """
    Parses the model answer; anything that is not a JSON object
    yields empty customizations.
    """
    text = (response or "").strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.startswith("json"):
            text = text[len("json"):]

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Template customization was not valid JSON, using defaults")
        return {"theme": {}, "config": {}, "content": {}}

    if not isinstance(data, dict):
        return {"theme": {}, "config": {}, "content": {}}

    return {
        "theme": data.get("theme") or {},
        "config": data.get("config") or {},
        "content": data.get("content") or {},
    }


def design_customization(cv: CVContent, template: Dict, theme: str) -> Dict:
    messages = DESIGN_PROMPT.format_messages(
        cv=cv.model_dump_json(exclude_defaults=True),
        template_name=template["name"],
        template_id=template["id"],
        theme=theme,
    )
    answer = _design_llm().invoke(messages).content
    return parse_customization(answer)
