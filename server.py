# server.py
import uvicorn
from main import app, config
from clinic.api.v1 import booking_router, doctor_router, schedule_router

API_PREFIX = "/api/v1"

for router in (doctor_router, schedule_router, booking_router):
    app.include_router(router, prefix=API_PREFIX)

if __name__ == "__main__":
    uvicorn.run(
        # main:app alone has no versioned routers mounted
        "server:app",
        host="0.0.0.0",
        port=8080,
        reload=not config.is_production,
        log_level=str(config.logging.level).lower(),
    )
