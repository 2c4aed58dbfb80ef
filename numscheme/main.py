from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from numscheme.api.routers.schemes import router as schemes_router

app = FastAPI(title="numscheme API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(schemes_router)


@app.get("/health")
def health():
    return {"status": "ok"}
