from __future__ import annotations

"""Fixed demonstration conversation shown in sample-data mode."""

from typing import List, Tuple

from .models import AgentResponse, ConversationMessage, Message, Product

SAMPLE_USER_TEXT = "I need a laptop for graphic design work"
SAMPLE_ASSISTANT_TEXT = (
    "I found some excellent laptops perfect for graphic design work. These models offer powerful "
    "processors, dedicated graphics cards, and high-resolution displays ideal for creative professionals."
)
SAMPLE_AGENT_MESSAGE = "I found some excellent laptops perfect for graphic design work."

SAMPLE_PRODUCTS = [
    Product(
        product_name='MacBook Pro 16" M3 Max',
        price="$3,499",
        description="Professional-grade laptop with M3 Max chip, 36GB RAM, and stunning Liquid Retina XDR display",
        features=["M3 Max chip", "36GB unified memory", '16.2" Liquid Retina XDR', "1TB SSD"],
        image_url="https://placehold.co/400x225/10b981/ffffff?text=MacBook+Pro",
        category="Laptops",
        pros=["Exceptional performance", "Best-in-class display", "Long battery life", "Premium build quality"],
        cons=["Expensive", "Limited ports", "No touchscreen"],
    ),
    Product(
        product_name="Dell XPS 15 OLED",
        price="$2,299",
        description="High-performance Windows laptop with Intel i9, NVIDIA RTX 4070, and stunning 4K OLED display",
        features=["Intel Core i9-13900H", "NVIDIA RTX 4070", '15.6" 4K OLED', "32GB RAM"],
        image_url="https://placehold.co/400x225/10b981/ffffff?text=Dell+XPS+15",
        category="Laptops",
        pros=["Gorgeous OLED display", "Powerful GPU", "Windows compatibility", "Expandable storage"],
        cons=["Battery life moderate", "Runs hot under load", "Webcam placement"],
    ),
    Product(
        product_name="ASUS ProArt Studiobook",
        price="$1,899",
        description="Creator-focused laptop with color-accurate display, RTX graphics, and professional tools",
        features=["AMD Ryzen 9", "NVIDIA RTX 4060", '16" OLED 4K', "Pantone validated"],
        image_url="https://placehold.co/400x225/10b981/ffffff?text=ASUS+ProArt",
        category="Laptops",
        pros=["Color-accurate display", "Great value", "Dial control", "Portable"],
        cons=["Plastic build", "Average speakers", "Shorter battery life"],
    ),
]

SAMPLE_SUGGESTIONS = [
    "Show me budget options under $1,500",
    "What about tablets for design?",
    "Compare these models",
]


def build_sample_conversation(now: int) -> Tuple[List[Message], List[ConversationMessage]]:
    """Return the demo turns and their matching agent history, timestamped relative to now."""
    agent_data = AgentResponse(
        message=SAMPLE_AGENT_MESSAGE,
        recommendations=[product.model_dump(by_alias=True) for product in SAMPLE_PRODUCTS],
        suggestions=list(SAMPLE_SUGGESTIONS),
    )
    messages = [
        Message(role="user", content=SAMPLE_USER_TEXT, timestamp=now - 60000),
        Message(role="assistant", content=SAMPLE_ASSISTANT_TEXT, agent_data=agent_data, timestamp=now - 30000),
    ]
    history = [
        ConversationMessage(role="user", content=SAMPLE_USER_TEXT),
        ConversationMessage(role="assistant", content=SAMPLE_AGENT_MESSAGE),
    ]
    return messages, history
