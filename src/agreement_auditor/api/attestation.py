# api/attestation.py
import hashlib
import json
import logging
import uuid
from typing import Any, Dict, List, Optional

import httpx

from agreement_auditor.config import settings
from agreement_auditor.core.errors import AttestationError
from agreement_auditor.core.schema import Agreement, AttestationReceipt, ExtractedInvoice, SubmissionDecision

logger = logging.getLogger(__name__)


class AttestationClient:
    """
    Records accepted submissions. Posts them to an attestation endpoint when
    one is configured; otherwise simulates the on-chain mint locally and
    derives the transaction hash from the payload.
    """

    def __init__(self, url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        self.url = url if url is not None else settings.attestation.url
        self.client = client
        self.receipts: List[AttestationReceipt] = []

    def _build_payload(self, submission_id: str, agreement: Agreement, invoice: ExtractedInvoice,
                       decision: SubmissionDecision) -> Dict[str, Any]:
        return {
            "submission_id": submission_id,
            "agreement_id": agreement.id,
            "contract_address": agreement.contract_address,
            "vendor": invoice.vendor,
            "invoice_number": invoice.invoice_number,
            "invoice_date": invoice.invoice_date.isoformat() if invoice.invoice_date else None,
            "category": agreement.category,
            "amount": invoice.grand_total,
            "route": decision.route,
        }

    async def attest(self, agreement: Agreement, invoice: ExtractedInvoice, decision: SubmissionDecision) -> AttestationReceipt:
        submission_id = f"RCP-{uuid.uuid4().hex[:10].upper()}"
        payload = self._build_payload(submission_id, agreement, invoice, decision)

        if self.url:
            tx_hash = await self._post(payload)
        else:
            digest = hashlib.sha256(json.dumps(payload, sort_keys=True).encode("utf-8")).hexdigest()
            tx_hash = f"0x{digest}"
            logger.info("Simulated attestation for %s: %s", submission_id, tx_hash)

        receipt = AttestationReceipt(
            submission_id=submission_id,
            agreement_id=agreement.id,
            route=decision.route,
            amount=invoice.grand_total,
            tx_hash=tx_hash,
        )
        self.receipts.append(receipt)
        return receipt

    async def _post(self, payload: Dict[str, Any]) -> str:
        logger.info("Attesting %s via %s", payload["submission_id"], self.url)
        try:
            if self.client is not None:
                response = await self.client.post(self.url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=settings.attestation.timeout_seconds) as client:
                    response = await client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            logger.error("Attestation request failed: %s", e)
            raise AttestationError(f"Attestation endpoint unreachable: {e}") from e

        if response.status_code not in (200, 201):
            logger.warning("Attestation rejected with HTTP %d", response.status_code)
            raise AttestationError(f"Attestation rejected (HTTP {response.status_code}).")

        tx_hash = response.json().get("tx_hash")
        if not tx_hash:
            raise AttestationError("Attestation response carries no tx_hash.")
        return tx_hash
