"""Listing CRUD and filter queries against the listings table.

Every call issues its request inside ``SupabaseClient`` and never raises for
backend failures: the error is logged with full backend detail and collapsed
into a failed ``GatewayResult`` holding the empty value for the call.
"""

from typing import Any, Optional

from pydantic import ValidationError

from reelhome.models.listing import (
    FilterOptions,
    Listing,
    ListingForm,
    ListingUpdate,
    compute_price_per_ping,
)
from reelhome.services.supabase_client import (
    GatewayResult,
    SupabaseClient,
    describe_error,
    first_row,
)
from reelhome.utils.config import Settings
from reelhome.utils.logging import get_structured_logger, timed

logger = get_structured_logger(__name__)


def _to_listings(rows: Optional[list[dict]]) -> list[Listing]:
    listings = []
    for row in rows or []:
        try:
            listings.append(Listing.model_validate(row))
        except ValidationError as e:
            logger.warning("Skipping malformed listing row", listing_id=row.get("id"), error=str(e))
    return listings


@timed("listings.get_published")
async def get_published_listings() -> GatewayResult[list[Listing]]:
    """All published listings, newest first."""
    async with SupabaseClient() as client:
        try:
            result = await (
                client.table(Settings.LISTINGS_TABLE)
                .select("*")
                .eq("is_published", True)
                .order("created_at", desc=True)
                .execute()
            )
            return GatewayResult.success(_to_listings(result.data))
        except Exception as e:
            logger.error("Error fetching listings", **describe_error(e))
            return GatewayResult.failure(f"Failed to fetch listings: {e}", [])


@timed("listings.filter")
async def filter_listings(options: FilterOptions) -> GatewayResult[list[Listing]]:
    """Published listings matching every constraint present in ``options``.

    Bounds are inclusive. A zero price bound counts as absent, like an empty
    form input.
    """
    async with SupabaseClient() as client:
        try:
            query = client.table(Settings.LISTINGS_TABLE).select("*").eq("is_published", True)
            
            if options.district:
                query = query.eq("district", options.district)
            if options.min_price:
                query = query.gte("price", options.min_price)
            if options.max_price:
                query = query.lte("price", options.max_price)
            if options.room_type:
                query = query.eq("room_type", options.room_type)
            
            result = await query.order("created_at", desc=True).execute()
            return GatewayResult.success(_to_listings(result.data))
        except Exception as e:
            logger.error(
                "Error filtering listings",
                filters=options.model_dump(exclude_none=True),
                **describe_error(e)
            )
            return GatewayResult.failure(f"Failed to filter listings: {e}", [])


async def get_listing_by_id(listing_id: str) -> GatewayResult[Optional[Listing]]:
    async with SupabaseClient() as client:
        try:
            result = await (
                client.table(Settings.LISTINGS_TABLE)
                .select("*")
                .eq("id", listing_id)
                .limit(1)
                .execute()
            )
            row = first_row(result)
            return GatewayResult.success(Listing.model_validate(row) if row else None)
        except Exception as e:
            logger.error("Error fetching listing", listing_id=listing_id, **describe_error(e))
            return GatewayResult.failure(f"Failed to fetch listing {listing_id}: {e}", None)


async def create_listing(form: ListingForm) -> GatewayResult[Optional[Listing]]:
    """Insert a validated form as a published listing.

    Callers run ``form.validate_form()`` first; validation errors never reach
    the backend.
    """
    payload = form.to_insert_payload()
    logger.info(
        "Creating listing",
        title=form.title,
        district=form.district,
        price=form.price,
        size=form.size,
        price_per_ping=payload["price_per_ping"]
    )
    
    async with SupabaseClient() as client:
        try:
            result = await client.table(Settings.LISTINGS_TABLE).insert(payload).execute()
            row = first_row(result)
            if row is None:
                logger.error("Listing insert returned no row", title=form.title)
                return GatewayResult.failure("Failed to create listing: no data returned", None)
            
            listing = Listing.model_validate(row)
            logger.info("Listing created", listing_id=listing.id)
            return GatewayResult.success(listing)
        except Exception as e:
            logger.error("Error creating listing", title=form.title, **describe_error(e))
            return GatewayResult.failure(f"Failed to create listing: {e}", None)


async def update_listing(listing_id: str, update: ListingUpdate) -> GatewayResult[Optional[Listing]]:
    """Apply a partial edit, re-deriving the unit price when price or size changes."""
    updates: dict[str, Any] = update.changes()
    
    async with SupabaseClient() as client:
        try:
            if update.touches_pricing:
                current = await (
                    client.table(Settings.LISTINGS_TABLE)
                    .select("price, size")
                    .eq("id", listing_id)
                    .limit(1)
                    .execute()
                )
                row = first_row(current) or {}
                price = updates.get("price", row.get("price"))
                size = updates.get("size", row.get("size"))
                if price is not None and size is not None:
                    updates["price_per_ping"] = compute_price_per_ping(price, size)
            
            result = await (
                client.table(Settings.LISTINGS_TABLE)
                .update(updates)
                .eq("id", listing_id)
                .execute()
            )
            row = first_row(result)
            if row is None:
                return GatewayResult.failure(f"Failed to update listing: {listing_id}", None)
            return GatewayResult.success(Listing.model_validate(row))
        except Exception as e:
            logger.error("Error updating listing", listing_id=listing_id, **describe_error(e))
            return GatewayResult.failure(f"Failed to update listing: {e}", None)


async def delete_listing(listing_id: str) -> GatewayResult[bool]:
    async with SupabaseClient() as client:
        try:
            await client.table(Settings.LISTINGS_TABLE).delete().eq("id", listing_id).execute()
            logger.info("Listing deleted", listing_id=listing_id)
            return GatewayResult.success(True)
        except Exception as e:
            logger.error("Error deleting listing", listing_id=listing_id, **describe_error(e))
            return GatewayResult.failure(f"Failed to delete listing: {e}", False)


async def submit_listing(form: ListingForm) -> GatewayResult[Optional[Listing]]:
    """Validate an agent submission and publish it.

    Raises ListingValidationError before any request when the form is invalid.
    """
    form.validate_form()
    return await create_listing(form)
