"""Central configuration for all technical settings.

All model parameters, API settings, paths and comic layout constants are
defined here.
"""

from pydantic import BaseModel

# =============================================================================
# LLM Settings (story, characters, script, title)
# =============================================================================
LLM_MODEL = "gpt-4o-mini"
LLM_TEMPERATURE = 0.8
LLM_MAX_TOKENS = 6000

# =============================================================================
# Image Generation Settings
# =============================================================================
IMAGE_MODEL = "gpt-image-1-mini"  # Alternative: "dall-e-3"
PANEL_IMAGE_SIZE = "1536x1024"  # Panels are printed at 4:3
COVER_IMAGE_SIZE = "1024x1536"
IMAGE_QUALITY = "medium"  # Options: "low", "medium", "high"

# =============================================================================
# Comic Layout
# =============================================================================
PANELS_PER_PAGE = 4
TOTAL_STORY_PAGES = 5
TOTAL_PANELS = TOTAL_STORY_PAGES * PANELS_PER_PAGE
TOTAL_PAGES = TOTAL_STORY_PAGES + 2  # cover + story pages + credits

# =============================================================================
# Project Files
# =============================================================================
PROJECT_FILE_VERSION = 2
PROJECT_FILENAME = "comic-gen-project.json"

# =============================================================================
# Output Directories
# =============================================================================
LOG_DIR = "logs"
EXPORTS_DIR = "exports"

GENERATION_MESSAGES = [
    "Sketching characters...",
    "Inking the lines...",
    "Coloring the world...",
    "Adding dialogue bubbles...",
    "Shading the scenes...",
    "Finalizing the cover art...",
    "Binding the pages...",
    "Almost there...",
]


# =============================================================================
# Per-gateway settings
# =============================================================================
class GatewayConfig(BaseModel):
    """Model parameters for one gateway instance.

    Defaults come from the module constants above.
    """

    llm_model: str = LLM_MODEL
    llm_temperature: float = LLM_TEMPERATURE
    llm_max_tokens: int = LLM_MAX_TOKENS
    image_model: str = IMAGE_MODEL
    panel_image_size: str = PANEL_IMAGE_SIZE
    cover_image_size: str = COVER_IMAGE_SIZE
    image_quality: str = IMAGE_QUALITY
