from fastapi import APIRouter

# Auth
from movieseat.api.v1.public.auth import router as auth_router

# Public: catalogue, functions and seat maps
from movieseat.api.v1.public.movies import router as movies_router

# Public: reservations
from movieseat.api.v1.public.reservations import router as reservations_router

# Public: user profile
from movieseat.api.v1.public.me import router as me_router

# Admin
from movieseat.api.v1.admin.movies import router as admin_movies_router
from movieseat.api.v1.admin.reservations import router as admin_reservations_router
from movieseat.api.v1.admin.users import router as admin_users_router

api_router = APIRouter()

# --- Auth ---
api_router.include_router(auth_router)

# --- Public ---
api_router.include_router(movies_router)
api_router.include_router(reservations_router)
api_router.include_router(me_router)

# --- Admin ---
api_router.include_router(admin_movies_router)
api_router.include_router(admin_reservations_router)
api_router.include_router(admin_users_router)
