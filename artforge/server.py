# artforge/server.py
import logging
from typing import Any, Optional

import stripe
from fastapi import FastAPI
from openai import AsyncOpenAI
from starlette.middleware.cors import CORSMiddleware

from artforge.api import auth, credits, generate, root
from artforge.core.config import Settings, get_openai_client, load_settings
from artforge.core.database import build_engine, build_session_factory, create_schema
from artforge.core.errors import AppError, app_error_handler
from artforge.core.logging_config import configure_logging
from artforge.services.checkout_service import seed_default_packages
from artforge.services.image_provider import GenerationProvider, OpenAIGenerationProvider

logger = logging.getLogger("artforge.server")


def create_app(
    settings: Optional[Settings] = None,
    generation_provider: Optional[GenerationProvider] = None,
    stripe_client: Optional[Any] = None,
    openai_client: Optional[AsyncOpenAI] = None,
) -> FastAPI:
    """
    Build the app and every handle it uses. Nothing is module-global: the
    engine, session factory and API clients live on app.state and reach the
    handlers through dependencies.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level, settings.log_dir)

    app = FastAPI(title="ArtForge Studio API")

    engine = build_engine(settings.database_url)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    # One OpenAI client per process; without a key the generation endpoints answer 503
    if openai_client is None and settings.openai_api_key:
        openai_client = get_openai_client(settings)
    if generation_provider is None and openai_client is not None:
        generation_provider = OpenAIGenerationProvider(
            openai_client,
            image_model=settings.openai_image_model,
            video_model=settings.openai_video_model,
        )
    app.state.openai_client = openai_client
    app.state.generation_provider = generation_provider
    if stripe_client is None and settings.stripe_secret_key:
        stripe_client = stripe.StripeClient(settings.stripe_secret_key)
    app.state.stripe_client = stripe_client

    app.add_exception_handler(AppError, app_error_handler)

    app.include_router(root.router)
    app.include_router(auth.router)
    app.include_router(generate.router)
    app.include_router(credits.router)

    app.add_middleware(
        CORSMiddleware,
        allow_credentials=True,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def init_database():
        await create_schema(engine)
        async with app.state.session_factory() as db:
            seeded = await seed_default_packages(db)
        if seeded:
            logger.info(f"Seeded {seeded} default credit packages")

    @app.on_event("shutdown")
    async def close_clients():
        if app.state.openai_client is not None:
            await app.state.openai_client.close()
        await engine.dispose()

    return app
