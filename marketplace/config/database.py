"""
Database configuration and connection management.
Handles MongoDB connection lifecycle and database operations.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, TEXT

from .settings import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class DatabaseManager:
    """Manages MongoDB database connection and operations."""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> None:
        """Establish connection to MongoDB."""
        try:
            logger.info("🚀 Connecting to MongoDB...")

            self.client = AsyncIOMotorClient(
                settings.mongodb_url,
                serverSelectionTimeoutMS=settings.server_selection_timeout_ms,
                connectTimeoutMS=settings.connect_timeout_ms,
                socketTimeoutMS=settings.socket_timeout_ms,
                maxPoolSize=settings.max_pool_size,
                minPoolSize=settings.min_pool_size,
                retryWrites=settings.retry_writes,
                directConnection=settings.direct_connection,
            )

            self.database = self.client[settings.database_name]

            await self.client.admin.command("ping")
            logger.info("✅ Connected to MongoDB successfully")

        except Exception as db_error:
            # The app still serves / and /health; data routes answer 503
            logger.warning(f"⚠️  MongoDB connection failed: {db_error}")
            self.database = None

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        try:
            if self.client is not None:
                self.client.close()
                logger.info("🔌 MongoDB connection closed")
        except Exception as e:
            logger.error(f"Error during database disconnect: {e}")
        finally:
            self.client = None
            self.database = None

    async def create_indexes(self) -> None:
        """Create database indexes for every marketplace collection."""
        if self.database is None:
            logger.warning("Database not connected, skipping index creation")
            return

        db = self.database
        try:
            # Catalog
            await db.products.create_index(
                [("name", TEXT), ("description", TEXT), ("tags", TEXT)]
            )
            await db.products.create_index("category_id")
            await db.products.create_index("seller_id")
            await db.products.create_index("price")
            await db.products.create_index("status")
            await db.categories.create_index("slug", unique=True)
            await db.categories.create_index("parent_id")
            await db.stores.create_index("seller_id", unique=True)

            # Buying
            await db.carts.create_index("user_id", unique=True)
            await db.orders.create_index("buyer_id")
            await db.orders.create_index("order_number", unique=True)
            await db.orders.create_index("items.seller_id")
            await db.orders.create_index([("buyer_id", ASCENDING), ("created_at", DESCENDING)])
            await db.addresses.create_index("user_id")
            await db.coupons.create_index("code", unique=True)
            await db.bids.create_index([("product_id", ASCENDING), ("amount", DESCENDING)])
            await db.bids.create_index("bidder_id")

            # Payments and shipping
            await db.payment_methods.create_index("user_id")
            await db.transactions.create_index("user_id")
            await db.transactions.create_index("seller_id")
            await db.transactions.create_index("order_id")
            await db.shipments.create_index("order_id", unique=True)
            await db.shipments.create_index("tracking_number")

            # Communication and after-sale
            await db.messages.create_index(
                [("sender_id", ASCENDING), ("receiver_id", ASCENDING), ("created_at", DESCENDING)]
            )
            await db.messages.create_index([("receiver_id", ASCENDING), ("read", ASCENDING)])
            await db.reviews.create_index("product_id")
            await db.reviews.create_index("seller_id")
            await db.reviews.create_index("user_id")
            await db.return_requests.create_index([("order_id", ASCENDING), ("product_id", ASCENDING)])
            await db.feedback.create_index("seller_id")
            await db.feedback.create_index("order_id")

            logger.info("✅ Database indexes created successfully")

        except Exception as index_error:
            logger.warning(f"⚠️  Failed to create indexes: {index_error}")

    def get_database(self) -> AsyncIOMotorDatabase:
        """Get database instance."""
        if self.database is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self.database

    def is_connected(self) -> bool:
        """Check if database is connected."""
        return self.database is not None


# Global database manager instance
db_manager = DatabaseManager()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan context manager for database connection."""
    try:
        logger.info("🚀 Starting up application...")
        await db_manager.connect()
        await db_manager.create_indexes()
        app.state.db_manager = db_manager
    except Exception as e:
        logger.error(f"❌ Failed to initialize application: {e}")

    yield

    await db_manager.disconnect()


async def get_database() -> AsyncIOMotorDatabase:
    """FastAPI dependency to get database instance."""
    if not db_manager.is_connected():
        raise HTTPException(
            status_code=503,
            detail="Database connection not available. Please check your MongoDB connection."
        )
    return db_manager.get_database()


def get_database_manager() -> DatabaseManager:
    """Get database manager instance."""
    return db_manager
