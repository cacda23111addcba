"""Requester enquiries about listings and their replies."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Callable

from bto_alloc.exceptions import AllocationError, ErrorCode
from bto_alloc.models.housing import Enquiry, EnquiryReply, Listing, Requester, Role
from bto_alloc.store.housing import HousingDataStore


class EnquiryDesk:
    """Create, edit, delete and answer enquiries.

    An enquiry can only be changed by its author and only until someone
    replies to it.
    """

    def __init__(
        self,
        store: HousingDataStore,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.clock = clock

    def submit(self, requester: Requester, listing: Listing, content: str) -> Enquiry:
        if not content.strip():
            raise AllocationError(ErrorCode.INVALID_REQUEST, "Enquiry content is empty")
        enquiry = Enquiry(
            enquiry_id=f"enq-{uuid.uuid4().hex[:12]}",
            requester_id=requester.requester_id,
            listing_id=listing.listing_id,
            content=content.strip(),
            submitted_at=self.clock(),
        )
        self.store.add_enquiry(enquiry)
        return enquiry

    def edit(self, enquiry: Enquiry, content: str) -> Enquiry:
        self._ensure_editable(enquiry)
        if not content.strip():
            raise AllocationError(ErrorCode.INVALID_REQUEST, "Enquiry content is empty")
        enquiry.content = content.strip()
        enquiry.updated_at = self.clock()
        return enquiry

    def delete(self, enquiry: Enquiry) -> Enquiry:
        self._ensure_editable(enquiry)
        return self.store.remove_enquiry(enquiry.enquiry_id)

    def reply(self, enquiry: Enquiry, responder_id: str, role: Role, text: str) -> EnquiryReply:
        if not text.strip():
            raise AllocationError(ErrorCode.INVALID_REQUEST, "Reply is empty")
        reply = EnquiryReply(
            responder_id=responder_id,
            role=role,
            text=text.strip(),
            replied_at=self.clock(),
        )
        enquiry.replies.append(reply)
        return reply

    @staticmethod
    def _ensure_editable(enquiry: Enquiry) -> None:
        if enquiry.is_answered:
            raise AllocationError(
                ErrorCode.NOT_EDITABLE, f"Enquiry {enquiry.enquiry_id} already has replies"
            )
