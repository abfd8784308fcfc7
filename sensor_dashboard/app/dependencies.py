from fastapi import HTTPException, Request, status

from sensor_dashboard.app.core.bus import ModbusBus


def get_bus(request: Request) -> ModbusBus:
    """Dependency to get the simulated bus owned by the running application"""
    bus = getattr(request.app.state, "bus", None)

    if bus is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is initializing, please try again later"
        )

    return bus
