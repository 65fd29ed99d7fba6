"""
Static storyboard templates.

Used whenever the storyboard LLM is unavailable, fails, or returns content
that does not parse into a valid storyboard.
"""

from typing import Dict, List, Union

from shared.models.job import Emotion
from shared.models.scene import SceneType, StoryboardScene

OPENING_PERFORMER_PROMPT = "performer singing emotionally to camera"
CLOSING_PERFORMER_PROMPT = "close-up of performer singing with emotion"
DEFAULT_MOOD_VISUAL = "abstract colorful visuals, slow drifting light"

# Mood-matching background footage per emotion
EMOTION_VISUALS: Dict[Emotion, str] = {
    Emotion.UNFILTERED: "handheld night city streets, neon reflections on wet asphalt, raw grainy texture",
    Emotion.VULNERABLE: "rain falling on a window, soft blue tones, melancholic atmosphere",
    Emotion.UNTOUCHABLE: "frozen mountain peak under a cold steel sky, icy blue light, slow aerial push-in",
    Emotion.NUMB: "empty fog-covered highway at dawn, desaturated grey tones, still and distant",
    Emotion.ASCENDING: "sunlight breaking through clouds, golden hour rays, camera rising over a glowing horizon",
    Emotion.UNHINGED: "strobing lights in a smoky warehouse, fast chaotic motion, intense red and purple hues",
}

# Template durations in seconds: performer / background / performer
TEMPLATE_DURATIONS = (3.0, 4.0, 3.0)


def default_storyboard(emotion: Union[Emotion, str]) -> List[StoryboardScene]:
    """
    Return the fixed 3-scene storyboard for an emotion.

    Unknown emotion labels get a generic background visual.
    """
    try:
        visual = EMOTION_VISUALS[Emotion(emotion)]
    except ValueError:
        visual = DEFAULT_MOOD_VISUAL

    opening, middle, closing = TEMPLATE_DURATIONS
    return [
        StoryboardScene(type=SceneType.PERFORMER, prompt=OPENING_PERFORMER_PROMPT, duration_sec=opening),
        StoryboardScene(type=SceneType.BACKGROUND, prompt=visual, duration_sec=middle),
        StoryboardScene(type=SceneType.PERFORMER, prompt=CLOSING_PERFORMER_PROMPT, duration_sec=closing),
    ]
