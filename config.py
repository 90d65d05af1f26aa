import os
from dataclasses import dataclass
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


@dataclass
class Settings:
    store_backend: str = "mongo"
    mongodb_uri: str = ""
    mongodb_db: str = "afterschoolDB"
    firebase_cred_path: str = ""
    firebase_db_url: str = ""
    host: str = "0.0.0.0"
    port: int = 3000
    images_dir: str = "images"
    cors_origins: tuple = ("*",)

    @classmethod
    def from_env(cls):
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            store_backend=os.getenv("STORE_BACKEND", "mongo").strip().lower(),
            mongodb_uri=os.getenv("MONGODB_URI", ""),
            mongodb_db=os.getenv("MONGODB_DB", "afterschoolDB"),
            firebase_cred_path=os.getenv("FIREBASE_CRED_JSON", ""),
            firebase_db_url=os.getenv("FIREBASE_DB_URL", ""),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            images_dir=os.getenv("IMAGES_DIR", "images"),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        )
