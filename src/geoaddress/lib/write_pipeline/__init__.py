"""Write pipeline — decides how each address write treats coordinates.

Public API:
    - run_pre_save: Build the change set for a create or update
    - plan_post_save: Decide stamping, events, job enqueueing and primary demotion
    - PendingWrite / PostSaveActions: Pipeline values
    - consume_coordinates, enforce_geocoding_disabled, invalidate_on_address_change:
      Individual pre-save rules
"""

from geoaddress.lib.write_pipeline.pipeline import (
    PRE_SAVE_RULES,
    PendingWrite,
    PostSaveActions,
    consume_coordinates,
    enforce_geocoding_disabled,
    geocoding_enabled_after,
    invalidate_on_address_change,
    plan_post_save,
    run_pre_save,
)

__all__ = [
    "PRE_SAVE_RULES",
    "PendingWrite",
    "PostSaveActions",
    "consume_coordinates",
    "enforce_geocoding_disabled",
    "geocoding_enabled_after",
    "invalidate_on_address_change",
    "plan_post_save",
    "run_pre_save",
]
