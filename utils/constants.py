"""
utils/constants.py

Purpose: Centralized static content

- All user-facing messages
- Reusable constants

(Prevents hardcoding across the codebase)
"""

# ============================================================
# IMAGE INTAKE
# ============================================================

IMAGE_RECEIVED_MESSAGE = (
    "Great! I received your image. What do you want to do with this image? "
    "Please describe how you'd like to edit it (e.g., \"add a sunset background\", "
    "\"make it look like a painting\", \"change the lighting\")."
)

UNSUPPORTED_IMAGE_TYPE_MESSAGE = "Please send a JPEG or PNG image file for video generation."

IMAGE_TOO_LARGE_MESSAGE = (
    "That image is too large. Please send a JPEG or PNG under {limit}."
)

EMPTY_IMAGE_MESSAGE = "I couldn't read that image. Please send it again as a JPEG or PNG."

IMAGE_UPLOAD_FAILED_MESSAGE = "Sorry, there was an error processing your image. Please try again."

# ============================================================
# EDITING
# ============================================================

ASK_EDIT_PROMPT_MESSAGE = (
    "Please describe how you'd like to edit your image "
    "(e.g., \"add a sunset background\", \"make it look like a painting\")."
)

EDIT_STARTED_MESSAGE = "Perfect! I'm editing your image now. This may take a moment..."

EDIT_IN_PROGRESS_MESSAGE = "I'm still working on editing your image. Please wait a moment..."

VIDEO_DECISION_MESSAGE = (
    "Would you like to:\n"
    "• \"Proceed to video\" - to animate this edited image\n"
    "• \"Make another edit\" - to further modify the image"
)

EDITED_IMAGE_MESSAGE = "Here's your edited image! " + VIDEO_DECISION_MESSAGE

EDITED_IMAGE_LINK_MESSAGE = "Here's your edited image: {url}\n\n" + VIDEO_DECISION_MESSAGE

ASK_EDIT_CHANGE_MESSAGE = (
    "What would you like to change about the image? "
    "Please describe the edit you want to make."
)

# ============================================================
# VIDEO
# ============================================================

ASK_VIDEO_PROMPT_MESSAGE = (
    "Great! Now, how would you like to animate this edited image? "
    "Please describe the animation you want (e.g., \"zebra galloping at high speeds\")."
)

REPEAT_VIDEO_PROMPT_MESSAGE = (
    "Please describe how you'd like to animate your image "
    "(e.g., \"zebra galloping at high speeds\")."
)

VIDEO_STARTED_MESSAGE = (
    "Perfect! I'm now generating your video. This may take a few minutes. "
    "I'll send you the result once it's ready."
)

VIDEO_IN_PROGRESS_MESSAGE = "I'm still working on your video. Please wait a moment..."

VIDEO_READY_MESSAGE = (
    "🎬 Your video is ready! Watch it here: {url}\n\n"
    "Send me another image to create more videos!"
)

# ============================================================
# RESET & ERRORS
# ============================================================

START_FRESH_MESSAGE = (
    "Let's start fresh! Please send me an image that you'd like to edit "
    "and animate into a video."
)

VIDEO_FAILED_MESSAGE = (
    "Sorry, there was an error generating your video. "
    "Please try again with a new image."
)

EDIT_FAILED_MESSAGE = (
    "Sorry, there was an error editing your image. "
    "Please try again with a new image."
)

MODERATED_MESSAGE = (
    "Sorry, your request was blocked by the content filter. "
    "Please send a new image and try a different description."
)

GENERIC_ERROR_MESSAGE = "Sorry, there was an error processing your request. Please try again."
