# backend/linkguess/db/mongodb.py
# Initialise le client MongoDB à partir des settings et expose des helpers simples d’accès aux collections.

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase

from linkguess.core.settings import get_settings

settings = get_settings()

client: AsyncIOMotorClient = AsyncIOMotorClient(settings.mongodb_uri)
db: AsyncIOMotorDatabase = client[settings.mongodb_db]

# Noms des collections du jeu
CHALLENGES = "challenges"
ATTEMPTS = "challenge_attempts"
GUESSES = "attempt_guesses"
COMMENT_REWARDS = "comment_rewards"
USER_PROFILES = "user_profiles"


def get_database() -> AsyncIOMotorDatabase:
    """Retourne la base MongoDB configurée (`settings.mongodb_db`)."""
    return db


def get_collection(name: str) -> AsyncIOMotorCollection:
    """Retourne une collection MongoDB par son nom.

    Description:
        Accède à `db[name]` et renvoie l'objet collection. Si la collection n'existe pas
        encore côté serveur, MongoDB la créera à la première insertion.

    Args:
        name (str): Nom de la collection (ex. "challenges", "challenge_attempts").

    Returns:
        AsyncIOMotorCollection: Instance de collection MongoDB asynchrone.
    """
    return db[name]


async def ping() -> bool:
    """Vérifie que le serveur MongoDB répond (`ping` admin)."""
    result = await client.admin.command("ping")
    return bool(result.get("ok"))
