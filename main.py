import logging
from typing import Optional

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

import order_service
import stay_service
import wishlist_service
from auth import LoggedinUser, identity_middleware, require_auth
from config import settings
from errors import ErrorKind, ServiceError, error_kind
from logging_config import setup_logging
from schemas import Order as OrderSchema, ReviewRequest, Stay as StaySchema
from schemas import Wishlist as WishlistSchema, WishlistStayRequest

setup_logging(settings.log_level, settings.log_file or None)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.project_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(identity_middleware)

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.VALIDATION: 400,
    ErrorKind.STORAGE_FAILURE: 500,
}


@app.exception_handler(ServiceError)
async def service_error_handler(request, exc: ServiceError):
    return JSONResponse(status_code=STATUS_BY_KIND[error_kind(exc)], content=exc.to_dict())


@app.exception_handler(PyMongoError)
async def storage_error_handler(request, exc: PyMongoError):
    logger.error("storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=STATUS_BY_KIND[ErrorKind.STORAGE_FAILURE],
        content={"detail": "Storage failure", "kind": error_kind(exc).value},
    )


@app.get("/")
def root():
    return {"message": "Stay Booking API running"}


# Stays
@app.get("/api/stay")
def list_stays(txt: Optional[str] = None, city: Optional[str] = None, type: Optional[str] = None,
               min_price: Optional[float] = Query(None, alias="minPrice"),
               guests: Optional[int] = None,
               sort_field: Optional[str] = Query(None, alias="sortField"),
               sort_dir: int = Query(1, alias="sortDir"),
               page_idx: Optional[int] = Query(None, alias="pageIdx", ge=0)):
    filter_by = {
        "txt": txt,
        "minPrice": min_price,
        "type": type,
        "city": city,
        "guests": guests,
        "sortField": sort_field,
        "sortDir": sort_dir,
        "pageIdx": page_idx,
    }
    return {"items": stay_service.query(filter_by)}


@app.get("/api/stay/{stay_id}")
def get_stay(stay_id: str):
    return stay_service.get_by_id(stay_id)


@app.post("/api/stay")
def create_stay(payload: StaySchema, loggedin_user: LoggedinUser = Depends(require_auth)):
    return stay_service.add(payload.to_document(), loggedin_user)


@app.put("/api/stay/{stay_id}")
@app.post("/api/stay/{stay_id}")
def update_stay(stay_id: str, payload: StaySchema, loggedin_user: LoggedinUser = Depends(require_auth)):
    stay = payload.to_document()
    stay["_id"] = stay_id
    return stay_service.update(stay, loggedin_user)


@app.delete("/api/stay/{stay_id}")
def delete_stay(stay_id: str, loggedin_user: LoggedinUser = Depends(require_auth)):
    return {"deleted": True, "_id": stay_service.remove(stay_id, loggedin_user)}


@app.post("/api/stay/{stay_id}/review")
def add_stay_review(stay_id: str, payload: ReviewRequest, loggedin_user: LoggedinUser = Depends(require_auth)):
    return stay_service.add_stay_review(stay_id, payload.txt, loggedin_user)


@app.delete("/api/stay/{stay_id}/review/{review_id}")
def remove_stay_review(stay_id: str, review_id: str, loggedin_user: LoggedinUser = Depends(require_auth)):
    return {"deleted": True, "id": stay_service.remove_stay_review(stay_id, review_id, loggedin_user)}


# Orders
@app.get("/api/order")
def list_orders(host_id: Optional[str] = Query(None, alias="hostId"),
                guest_id: Optional[str] = Query(None, alias="guestId"),
                status: Optional[str] = None,
                stay_id: Optional[str] = Query(None, alias="stayId"),
                start_date: Optional[str] = Query(None, alias="startDate"),
                end_date: Optional[str] = Query(None, alias="endDate"),
                total_price_min: Optional[float] = Query(None, alias="totalPriceMin"),
                total_price_max: Optional[float] = Query(None, alias="totalPriceMax"),
                loggedin_user: LoggedinUser = Depends(require_auth)):
    filter_by = {
        "hostId": host_id,
        "guestId": guest_id,
        "status": status,
        "stayId": stay_id,
        "startDate": start_date,
        "endDate": end_date,
        "totalPriceMin": total_price_min,
        "totalPriceMax": total_price_max,
    }
    return {"items": order_service.query(filter_by, loggedin_user)}


@app.get("/api/order/{order_id}")
def get_order(order_id: str, loggedin_user: LoggedinUser = Depends(require_auth)):
    return order_service.get_by_id(order_id, loggedin_user)


@app.post("/api/order")
def create_order(payload: OrderSchema, loggedin_user: LoggedinUser = Depends(require_auth)):
    return order_service.add(payload.to_document(), loggedin_user)


@app.put("/api/order/{order_id}")
def update_order(order_id: str, payload: OrderSchema, loggedin_user: LoggedinUser = Depends(require_auth)):
    order = payload.to_document()
    order["_id"] = order_id
    return order_service.update(order, loggedin_user)


@app.delete("/api/order/{order_id}")
def delete_order(order_id: str, loggedin_user: LoggedinUser = Depends(require_auth)):
    return {"deleted": True, "_id": order_service.remove(order_id, loggedin_user)}


# Wishlists
@app.get("/api/wishlist")
def list_wishlists(user_id: Optional[str] = Query(None, alias="userId"),
                   loggedin_user: LoggedinUser = Depends(require_auth)):
    return {"items": wishlist_service.query({"userId": user_id}, loggedin_user)}


@app.get("/api/wishlist/{wishlist_id}")
def get_wishlist(wishlist_id: str, loggedin_user: LoggedinUser = Depends(require_auth)):
    return wishlist_service.get_by_id(wishlist_id, loggedin_user)


@app.post("/api/wishlist")
def create_wishlist(payload: WishlistSchema, loggedin_user: LoggedinUser = Depends(require_auth)):
    return wishlist_service.add(payload.to_document(), loggedin_user)


@app.put("/api/wishlist/{wishlist_id}")
def update_wishlist(wishlist_id: str, payload: WishlistSchema, loggedin_user: LoggedinUser = Depends(require_auth)):
    wishlist = payload.to_document()
    wishlist["_id"] = wishlist_id
    return wishlist_service.update(wishlist, loggedin_user)


@app.delete("/api/wishlist/{wishlist_id}")
def delete_wishlist(wishlist_id: str, loggedin_user: LoggedinUser = Depends(require_auth)):
    return {"deleted": True, "_id": wishlist_service.remove(wishlist_id, loggedin_user)}


@app.post("/api/wishlist/{wishlist_id}/stay")
def add_stay_to_wishlist(wishlist_id: str, payload: WishlistStayRequest,
                         loggedin_user: LoggedinUser = Depends(require_auth)):
    return wishlist_service.add_stay_to_wishlist(wishlist_id, payload.stayId, loggedin_user)


@app.delete("/api/wishlist/{wishlist_id}/stay/{stay_id}")
def remove_stay_from_wishlist(wishlist_id: str, stay_id: str, loggedin_user: LoggedinUser = Depends(require_auth)):
    return wishlist_service.remove_stay_from_wishlist(wishlist_id, stay_id, loggedin_user)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
