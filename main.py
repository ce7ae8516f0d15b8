import logging
from typing import Any, Dict, Literal, Optional

from fastapi import Body, FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware

from config import get_settings
from errors import ValidationError
from formatter import ScheduleFormatter
from models.scheduling_model import ConflictRequest
from services.conflict_service import check_timetable_conflicts
from services.generation_service import TimetableService
from validator import RequestValidator

#  python -m uvicorn main:app --reload --port 9000 run this
settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Timetable Engine")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_service() -> TimetableService:
    return TimetableService(settings)


@app.get("/")
def root():
    return {"message": "Timetable engine is running!"}


@app.get("/ping")
def ping():
    service = get_service()
    online = service.client.is_online() if service.client is not None else False
    return {"online": online}


@app.post("/timetable/offline")
def generate_offline_timetable(
    data: Dict[str, Any] = Body(...),
    strategy: Optional[Literal["greedy", "cpsat"]] = None,
):
    """
    Generate a weekly timetable with the local engine only (no network).
    """
    try:
        timetable = get_service().generate_offline(data, strategy=strategy)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.to_dict())
    return ScheduleFormatter.to_json(timetable)


@app.post("/timetable")
def generate_timetable(response: Response, data: Dict[str, Any] = Body(...)):
    """
    Generate a weekly timetable, trying the network-backed generator first and
    falling back to the local engine.
    """
    try:
        timetable, source = get_service().generate(data)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.to_dict())
    response.headers["X-Timetable-Source"] = source
    return ScheduleFormatter.to_json(timetable)


@app.post("/timetable/conflicts")
def check_timetable(request: ConflictRequest):
    """
    Delegates conflict checking to conflict_service.py
    """
    try:
        normalized = RequestValidator(request.request, max_roster_size=settings.max_roster_size).normalize()
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.to_dict())

    conflicts = check_timetable_conflicts(normalized, request.timetable)
    return {
        "conflict": bool(conflicts),
        "conflicts": [c.model_dump() for c in conflicts],
    }


if __name__ == "__main__":
    import json, sys

    if len(sys.argv) != 2:
        print("Usage: python main.py <request.json>")
        sys.exit(2)

    with open(sys.argv[1]) as fh:
        raw = json.load(fh)

    try:
        result = TimetableService(settings).generate_offline(raw)
    except ValidationError as ve:
        print("Invalid request:", ve)
        sys.exit(1)

    print(ScheduleFormatter.to_text(result))
