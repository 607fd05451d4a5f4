from bson import ObjectId

from auth import LoggedinUser


def make_user(fullname, is_admin=False):
    return LoggedinUser(id=str(ObjectId()), fullname=fullname, img_url=f"https://img/{fullname}.png", is_admin=is_admin)


def headers_for(user):
    headers = {"X-User-Id": user.id, "X-User-Fullname": user.fullname}
    if user.is_admin:
        headers["X-User-Admin"] = "true"
    return headers
