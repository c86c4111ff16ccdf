import logging

from arango import ArangoClient

from backend.app.core.config import settings

logger = logging.getLogger(__name__)

COLLECTIONS = ["Sessions", "Archives"]

class ArangoDB:
    def __init__(self):
        self.client = None
        self.db = None

    def initialize(self):
        try:
            self.client = ArangoClient(hosts=settings.ARANGO_HOST)
            sys_db = self.client.db('_system', username=settings.ARANGO_USERNAME, password=settings.ARANGO_PASSWORD)
            if not sys_db.has_database(settings.ARANGO_DB_NAME):
                sys_db.create_database(settings.ARANGO_DB_NAME)

            self.db = self.client.db(settings.ARANGO_DB_NAME, username=settings.ARANGO_USERNAME, password=settings.ARANGO_PASSWORD)

            for col in COLLECTIONS:
                if not self.db.has_collection(col):
                    self.db.create_collection(col)

            # Listing sorts archives by date, sessions by activity
            self.db.collection("Archives").add_persistent_index(fields=["archivedAt"])
            self.db.collection("Sessions").add_persistent_index(fields=["userId", "lastActive"])

            logger.info("Connected to ArangoDB: %s", settings.ARANGO_DB_NAME)
            return self.db
        except Exception:
            logger.exception("Failed to connect to ArangoDB at %s", settings.ARANGO_HOST)
            self.db = None
            raise

    def get_db(self):
        if not self.db:
            self.initialize()
        return self.db

db = ArangoDB()
