"""Word lists driving the heuristic moment scorer and caption emoji."""

from typing import Dict, List

VIRAL_KEYWORDS: List[str] = [
    "shocking", "crazy", "insane", "unbelievable", "secret", "revealed", "truth",
    "amazing", "incredible", "must see", "warning", "exposed", "never", "always",
    "everyone", "nobody", "mistake", "hack", "trick", "best", "worst", "first time",
    "story", "happened", "realized", "discovered", "finally", "actually",
]

EMOTION_KEYWORDS: Dict[str, List[str]] = {
    "excitement": ["excited", "amazing", "incredible", "wow", "awesome", "fantastic"],
    "surprise": ["shocking", "surprised", "unexpected", "suddenly", "wait", "what"],
    "urgency": ["now", "must", "need", "quick", "important", "immediately"],
    "curiosity": ["why", "how", "what if", "imagine", "think about", "ever wondered"],
    "controversy": ["wrong", "lie", "truth", "exposed", "hidden", "secret"],
    "positive": ["love", "great", "happy", "best", "beautiful", "perfect"],
    "negative": ["hate", "bad", "sad", "angry", "terrible", "awful"],
}

EMOJI_MAP: Dict[str, List[str]] = {
    "excitement": ["🔥", "⚡", "💥", "🚀", "✨"],
    "surprise": ["😱", "🤯", "😮", "👀", "‼️"],
    "urgency": ["⏰", "🚨", "❗", "⚠️", "🔴"],
    "curiosity": ["🤔", "💭", "🧐", "❓", "🔍"],
    "controversy": ["💣", "🎯", "⛔", "🚫", "🔥"],
    "positive": ["😊", "❤️", "👍", "💯", "🎉"],
    "negative": ["😢", "😤", "💔", "👎", "⚠️"],
}
