"""Keyword-based course categorization."""

from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_CATEGORY = "general"

CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "machine-learning": (
        "machine learning", "ml", "neural network", "deep learning", "tensorflow",
        "pytorch", "scikit-learn", "supervised", "unsupervised", "reinforcement",
        "regression", "classification", "clustering", "model training",
    ),
    "natural-language-processing": (
        "nlp", "natural language", "text processing", "sentiment analysis",
        "language model", "llm", "gpt", "bert", "transformers", "tokenization",
        "embeddings", "chatbot", "translation",
    ),
    "computer-vision": (
        "computer vision", "image processing", "object detection", "image recognition",
        "convolutional", "cnn", "opencv", "segmentation", "facial recognition",
        "yolo", "image classification",
    ),
    "ai-fundamentals": (
        "artificial intelligence", "ai basics", "introduction to ai", "ai concepts",
        "intelligent systems", "ai history", "ai ethics", "ai applications",
    ),
    "data-science": (
        "data science", "data analysis", "statistics", "pandas", "numpy",
        "data visualization", "exploratory data", "feature engineering",
        "data cleaning", "data preprocessing",
    ),
    "neural-networks": (
        "neural network", "perceptron", "backpropagation", "activation function",
        "gradient descent", "optimizer", "loss function", "architecture",
    ),
    "generative-ai": (
        "generative ai", "gan", "diffusion", "stable diffusion", "dall-e",
        "midjourney", "text-to-image", "image generation", "creative ai",
        "generative model", "vae", "autoencoder",
    ),
    "ai-agents": (
        "ai agent", "autonomous agent", "multi-agent", "agent architecture",
        "reasoning", "planning", "langchain", "autogpt", "agent framework",
    ),
    "prompt-engineering": (
        "prompt engineering", "prompt design", "few-shot", "chain of thought",
        "prompting", "prompt optimization", "instruction tuning",
    ),
    "ai-tools": (
        "ai tools", "no-code ai", "ai platforms", "ai api", "openai api",
        "hugging face", "replicate", "cohere", "anthropic",
    ),
    "ethics-safety": (
        "ai ethics", "ai safety", "bias", "fairness", "responsible ai",
        "ai governance", "explainability", "transparency", "alignment",
    ),
    "research": (
        "ai research", "paper", "sota", "state of the art", "benchmark",
        "arxiv", "research methodology", "experimental",
    ),
}


@dataclass(frozen=True)
class Category:
    id: str
    label_en: str
    label_es: str


COURSE_CATEGORIES = (
    Category("machine-learning", "Machine Learning", "Aprendizaje Automático"),
    Category("natural-language-processing", "Natural Language Processing", "Procesamiento de Lenguaje Natural"),
    Category("computer-vision", "Computer Vision", "Visión por Computadora"),
    Category("ai-fundamentals", "AI Fundamentals", "Fundamentos de IA"),
    Category("data-science", "Data Science", "Ciencia de Datos"),
    Category("neural-networks", "Neural Networks", "Redes Neuronales"),
    Category("generative-ai", "Generative AI", "IA Generativa"),
    Category("ai-agents", "AI Agents", "Agentes de IA"),
    Category("prompt-engineering", "Prompt Engineering", "Ingeniería de Prompts"),
    Category("ai-tools", "AI Tools & Platforms", "Herramientas y Plataformas de IA"),
    Category("ethics-safety", "Ethics & Safety", "Ética y Seguridad"),
    Category("research", "Research & Papers", "Investigación y Artículos"),
    Category(DEFAULT_CATEGORY, "General", "General"),
)

# Whole-word matching so "ml" doesn't hit "html" and "gan" doesn't hit "organ"
_PATTERNS: dict[str, list[re.Pattern[str]]] = {
    category: [re.compile(rf"(?<![a-z0-9]){re.escape(keyword)}(?![a-z0-9])") for keyword in keywords]
    for category, keywords in CATEGORY_KEYWORDS.items()
}


def score_categories(text: str) -> dict[str, int]:
    """Number of keyword hits per category (categories with no hits omitted)."""
    lowered = text.lower()
    scores = {}
    for category, patterns in _PATTERNS.items():
        hits = sum(1 for pattern in patterns if pattern.search(lowered))
        if hits:
            scores[category] = hits
    return scores


def categorize_course(topic: str, description: str | None = None) -> str:
    """Category with the most keyword hits in topic + description.

    Ties go to the category listed first; no hits gives "general".
    """
    scores = score_categories(f"{topic} {description or ''}")
    if not scores:
        return DEFAULT_CATEGORY
    return max(scores, key=lambda category: scores[category])
