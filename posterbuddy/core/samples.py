"""Sample posters for a fresh in-memory store."""
from typing import List

from posterbuddy.models.poster import PLACEHOLDER_POSTER_URL, Poster


def sample_posters() -> List[Poster]:
    return [
        Poster(
            id="sample-1",
            name="The Last Guardian",
            poster_url=PLACEHOLDER_POSTER_URL,
            description=(
                "In a dystopian future where humanity teeters on the brink of extinction, "
                "one warrior stands as the final hope against an alien invasion that has "
                "consumed the galaxy."
            ),
            starring="Maya Rodriguez, James Chen, Alexandra Park",
            director="Marcus Thompson",
            runtime="127 minutes",
            genre="Sci-Fi Action Thriller",
            rating="PG-13",
            poster_ai_hint="sci-fi warrior poster",
        ),
        Poster(
            id="sample-2",
            name="Cybernetic City",
            poster_url=PLACEHOLDER_POSTER_URL,
            description=(
                "In a neon-drenched metropolis of the future, a hard-boiled detective with a "
                "cybernetic heart untangles a conspiracy that reaches the highest echelons of "
                "a city that never sleeps."
            ),
            starring="Keanu Reeves, Scarlett Johansson",
            director="Denis Villeneuve",
            runtime="148 minutes",
            genre="Cyberpunk Noir",
            rating="R",
            poster_ai_hint="cyberpunk poster",
        ),
        Poster(
            id="sample-3",
            name="The Last Dragon",
            poster_url=PLACEHOLDER_POSTER_URL,
            description=(
                "In a realm of magic and myth, a young warrior is destined to find the last "
                "dragon's egg. She must protect it from dark forces who seek to extinguish the "
                "last spark of draconic power."
            ),
            starring="Zendaya, Tom Holland",
            director="Peter Jackson",
            runtime="165 minutes",
            genre="Fantasy Adventure",
            rating="PG-13",
            poster_ai_hint="fantasy poster",
        ),
    ]
