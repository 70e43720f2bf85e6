from fastapi import FastAPI
from square_billing.core.config import settings
from square_billing.core.logging import configure_logging
from square_billing.plans.validation import validate_plans

# Import routers
from square_billing.api.plans import router as plans_router
from square_billing.api.subscriptions import router as subscriptions_router

def create_app() -> FastAPI:
    configure_logging()
    # Report plans still missing Square ids; the app starts either way
    validate_plans(settings.plans_config_path)

    app = FastAPI(title=settings.app_name)

    @app.get("/health")
    def health():
        return {"status" : "ok", "env" : settings.app_env}

    # Include plan catalog routes
    app.include_router(plans_router)
    # Include subscription sync / refund routes
    app.include_router(subscriptions_router)

    return app

app = create_app()
