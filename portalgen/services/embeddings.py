# portalgen/services/embeddings.py

from langchain_openai import OpenAIEmbeddings
from langchain_text_splitters import RecursiveCharacterTextSplitter
from typing import List, Dict, Optional

from portalgen.config import EMBEDDING_MODEL, OPENAI_API_KEY
from portalgen.schemas.job import CVContent

_emb: Optional[OpenAIEmbeddings] = None


def _embedding_model() -> OpenAIEmbeddings:
    global _emb
    if _emb is None:
        _emb = OpenAIEmbeddings(model=EMBEDDING_MODEL, api_key=OPENAI_API_KEY)
    return _emb


# -------------------------
# CV -> text sections
# -------------------------
def cv_sections(cv: CVContent) -> List[Dict]:
    """
    Flattens CV content into (section, importance, text) entries,
    most important first.
    """
    sections = []

    personal = " - ".join(filter(None, [cv.name, cv.title, cv.email]))
    if personal:
        sections.append({"section": "personal", "importance": 10, "text": f"Professional: {personal}"})

    if cv.summary:
        sections.append({"section": "summary", "importance": 9, "text": f"Professional Summary: {cv.summary}"})

    for exp in cv.experience:
        parts = [f"{exp.position or 'Role'} at {exp.company or 'Unknown'}"]
        if exp.duration:
            parts.append(f"({exp.duration})")
        if exp.description:
            parts.append(exp.description)
        if exp.achievements:
            parts.append("Achievements: " + "; ".join(exp.achievements))
        if exp.technologies:
            parts.append("Technologies: " + ", ".join(exp.technologies))
        sections.append({"section": "experience", "importance": 8, "text": " ".join(parts)})

    for edu in cv.education:
        degree = " in ".join(filter(None, [edu.degree, edu.field])) or "Studies"
        text = f"Education: {degree} at {edu.institution or 'Unknown'}"
        if edu.graduationDate:
            text += f" ({edu.graduationDate})"
        if edu.gpa:
            text += f". GPA: {edu.gpa}"
        if edu.honors:
            text += ". Honors: " + "; ".join(edu.honors)
        if edu.description:
            text += f". {edu.description}"
        sections.append({"section": "education", "importance": 7, "text": text})

    for project in cv.projects:
        text = f"Project: {project.name}. {project.description or ''}"
        if project.technologies:
            text += f" Technologies: {', '.join(project.technologies)}"
        sections.append({"section": "projects", "importance": 8, "text": text.strip()})

    if cv.skills:
        sections.append({"section": "skills", "importance": 7, "text": "Skills: " + ", ".join(cv.skills)})

    for cert in cv.certifications:
        text = f"Certification: {cert.name} from {cert.issuer or 'Unknown'}"
        if cert.date:
            text += f". Issued: {cert.date}"
        sections.append({"section": "certifications", "importance": 7, "text": text})

    if cv.languages:
        langs = ", ".join(f"{l.language}: {l.proficiency or 'Proficient'}" for l in cv.languages)
        sections.append({"section": "languages", "importance": 5, "text": f"Languages: {langs}"})

    for name, value in cv.customSections.items():
        if isinstance(value, str) and value.strip():
            sections.append({"section": "custom", "importance": 6, "text": f"{name}: {value}"})

    return sections


def chunk_cv(cv: CVContent, *, chunk_size: int = 800, chunk_overlap: int = 100) -> List[Dict]:
    """
    Splits every CV section into retrieval chunks.
    Chunk ids are deterministic: {section}-{sectionIndex}-{chunkIndex}.
    """
    splitter = RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        separators=["\n\n", "\n", ". ", " ", ""],
    )

    chunks = []
    for s_idx, section in enumerate(cv_sections(cv)):
        for c_idx, text in enumerate(splitter.split_text(section["text"])):
            chunks.append({
                "id": f"{section['section']}-{s_idx}-{c_idx}",
                "text": text,
                "metadata": {
                    "section": section["section"],
                    "importance": section["importance"],
                },
            })
    return chunks


def embed_chunks(chunks: List[Dict]) -> List[Dict]:
    """
    Adds an embedding vector ("values") to every chunk.
    """
    if not chunks:
        return []

    vectors = _embedding_model().embed_documents([c["text"] for c in chunks])

    return [
        {**chunk, "values": vector}
        for chunk, vector in zip(chunks, vectors)
    ]


def to_pinecone_vectors(embedded: List[Dict], *, portal_id: str, user_id: str) -> List[Dict]:
    vectors = []
    for chunk in embedded:
        vectors.append({
            "id": f"{portal_id}:{chunk['id']}",
            "values": chunk["values"],
            "metadata": {
                **chunk["metadata"],
                "portalId": portal_id,
                "userId": user_id,
                "chunkId": chunk["id"],
                "text": chunk["text"],   # TEXT STORED IN PINECONE
            },
        })
    return vectors
