"""Prompt templates for the moderation oracle.

Each template uses ``{placeholder}`` syntax for substitution via
``str.format()``.  User content is always quoted inside the prompt body and
never placed in the system prompt.
"""

# ---------------------------------------------------------------------------
# Language detection
# ---------------------------------------------------------------------------

LANGUAGE_SYSTEM_PROMPT = (
    "You identify the language of short social-media posts. "
    "Respond with exactly one of: english, telugu, telugu-english, unknown."
)

LANGUAGE_PROMPT = """\
Identify the language of this text: "{text}".
If it's Telugu, respond with "telugu".
If it's English, respond with "english".
If it's a mix of Telugu and English, respond with "telugu-english".
If you cannot tell, respond with "unknown".
Respond with only one word.
"""

# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

CLASSIFY_SYSTEM_PROMPT = "You are an expert content moderator for a social-media platform."

# Framing per content type; text gets the detected language.
CLASSIFY_FRAMING = {
    "text": "Analyze this {language} text for policy violations:",
    "image": "Analyze this image description for policy violations:",
    "video": "Analyze this video description for policy violations:",
    "audio": "Analyze this audio transcription for policy violations:",
}

CLASSIFY_PROMPT = """\
{framing}

"{content}"

User has {recent_violations} recent violations.

Provide a JSON response with these fields:
- isViolation: Boolean indicating if this violates platform policies
- categories: Array of violation categories ('hate', 'harassment', 'sexual', 'violence', 'self-harm', 'misinformation', 'spam', 'clean')
- primaryCategory: The main violation category
- confidence: Your confidence in this analysis (0-1)
- recommendedAction: One of 'allow', 'warn', 'suspend', 'ban'
- explanation: Brief explanation of your decision

Format your response as valid JSON only.
"""

# ---------------------------------------------------------------------------
# Explanation
# ---------------------------------------------------------------------------

EXPLAIN_SYSTEM_PROMPT = "You are an AI content moderator explaining your decision to a user."

EXPLAIN_PROMPT = """\
Content: "{content}"

Your decision: {verdict}
Category: {category}
Action: {action}

Provide a detailed, educational explanation of why this decision was made. \
Be specific about which parts of the content triggered the decision, and \
explain the relevant platform policy. Keep your explanation under 150 words.
"""
