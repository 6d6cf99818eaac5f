"""
Keyword-driven reply generator for the children's assistant.

Pure and total: every input gets a reply, unknown input gets the
fallback encouragement.
"""

from typing import Sequence, Tuple

# (keywords, reply), checked in order; first keyword hit wins.
RESPONSES: Sequence[Tuple[Tuple[str, ...], str]] = (
    (("bonjour", "salut", "hello"),
     "Bonjour! Comment puis-je t'aider aujourd'hui? 😊"),
    (("temps", "météo"),
     "Il fait beau aujourd'hui! Le soleil brille! ☀️ C'est parfait pour jouer dehors!"),
    (("couleur", "rouge", "bleu"),
     "Les couleurs sont magnifiques! Rouge comme une pomme 🍎, bleu comme le ciel 🌤️, jaune comme le soleil ☀️!"),
    (("compter", "nombre"),
     "Comptons ensemble! 1, 2, 3, 4, 5! 🎵 Tu es super!"),
    (("animal", "chat", "chien"),
     "J'adore les animaux! Les chats font \"miaou\" 🐱 et les chiens font \"ouaf\" 🐕!"),
    (("merci",),
     "De rien! Je suis toujours là pour t'aider! 💙"),
    (("pouce levé", "👍"),
     "Super! Continue comme ça! Tu es génial! 🌟"),
    (("victoire", "✌️"),
     "Victoire! Bravo champion! 🏆"),
    (("stop", "✋"),
     "D'accord, je m'arrête! Dis-moi quand tu es prêt! 🤚"),
    (("apprendre", "éducation"),
     "J'adore apprendre! On peut apprendre les couleurs, les nombres, les animaux... Que veux-tu apprendre? 📚"),
)

FALLBACK_REPLY = ("C'est intéressant! Raconte-moi en plus! 😊 "
                  "Tu peux aussi essayer de me parler avec ta voix ou tes gestes!")


class Responder:
    """Maps an utterance or gesture text to a reply."""

    def __init__(self, responses: Sequence[Tuple[Tuple[str, ...], str]] = RESPONSES,
                 fallback: str = FALLBACK_REPLY):
        self._responses = responses
        self._fallback = fallback

    def reply(self, text: str) -> str:
        lowered = text.lower()
        for keywords, reply in self._responses:
            if any(keyword in lowered for keyword in keywords):
                return reply
        return self._fallback
