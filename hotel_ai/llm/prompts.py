"""
Langchain Prompt Templates
Defines prompts for hotel replies and general travel answers
"""

from langchain_core.prompts import PromptTemplate

# ============================================
# System persona
# ============================================

SYSTEM_PROMPT = """You are Maya, a friendly travel assistant for Mexico hotels.

FORMATTING RULES:
- NO asterisks or markdown
- Plain text only
- Use numbers for lists (1. 2. 3.)

Be specific, friendly, and helpful. Maximum 3-4 sentences unless listing hotels."""

# ============================================
# Hotel search reply
# ============================================

HOTEL_REPLY_PROMPT = PromptTemplate(
    input_variables=["user_query", "hotel_context", "match_note"],
    template="""Query: "{user_query}"

Relevant hotels (mention ONLY these, in this order, and never invent others):
{hotel_context}
{match_note}
Write a short, friendly reply that introduces these hotels and explains briefly why each fits the request. Do not mention prices or amenities that are not listed above."""
)

# ============================================
# General travel question
# ============================================

GENERAL_REPLY_PROMPT = PromptTemplate(
    input_variables=["user_query", "conversation_context"],
    template="""{conversation_context}Query: "{user_query}"

Provide a helpful, concise response about travel in Mexico. If the question is about where to stay, invite the user to ask for hotel recommendations."""
)


def format_hotel_line(position: int, name: str, city: str, price_range: str, rating: float, amenities) -> str:
    """One numbered hotel line for the prompt context"""
    top_amenities = ", ".join(list(amenities)[:4])
    return f"{position}. {name} ({city}) - {price_range or 'n/a'}, {rating:.1f}/5. Amenities: {top_amenities}"


def format_conversation_context(turns) -> str:
    """Recent turns rendered as a context preamble (empty when no history)"""
    if not turns:
        return ""
    lines = [f"- {turn.query}" for turn in turns]
    return "Earlier in this conversation the user asked:\n" + "\n".join(lines) + "\n\n"
