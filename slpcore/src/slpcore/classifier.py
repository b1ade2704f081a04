"""
Utxo classification.

Classification runs in two phases:

1. Initial judgement: each utxo is judged from the OP_RETURN message of its
   originating transaction alone. Anything that fails to decode is NOT_SLP.
2. Final judgement: the distinct txids of candidate tokens and batons are sent
   to the ancestry validator in a single call. Candidates whose txid is not
   confirmed are downgraded to INVALID_TOKEN_DAG / INVALID_BATON_DAG.

Judgements are computed into a buffer and written to the utxos only after the
validator has answered, so a failed or cancelled call leaves the batch as it
was and classification can simply be retried.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from slpcore.config import Settings
from slpcore.message import (
    GenesisMessage,
    MintMessage,
    SendMessage,
    try_decode_message,
)
from slpcore.models import SlpBalancesResult, SlpUtxo, UtxoJudgement
from slpcore.validator import AncestryValidationError, AncestryValidator


class InternalConsistencyError(RuntimeError):
    """Raised when classification reaches a state that should be impossible."""

    pass


@dataclass(frozen=True)
class Judgement:
    """Classification outcome for one utxo."""

    judgement: UtxoJudgement
    amount: int | None = None
    message: GenesisMessage | MintMessage | SendMessage | None = None
    token_id: str | None = None

    def downgraded(self) -> Judgement:
        """
        Return the judgement for a candidate whose ancestry was rejected.

        Only valid tokens carry an amount.
        """
        if self.judgement == UtxoJudgement.SLP_TOKEN:
            return Judgement(
                UtxoJudgement.INVALID_TOKEN_DAG, None, self.message, self.token_id
            )
        if self.judgement == UtxoJudgement.SLP_BATON:
            return Judgement(
                UtxoJudgement.INVALID_BATON_DAG, None, self.message, self.token_id
            )
        return self

    @property
    def is_candidate(self) -> bool:
        return self.judgement in (UtxoJudgement.SLP_TOKEN, UtxoJudgement.SLP_BATON)


NOT_SLP = Judgement(UtxoJudgement.NOT_SLP)


def initial_judgement(utxo: SlpUtxo) -> Judgement:
    """
    Judge a utxo from the OP_RETURN of its originating transaction.

    Never raises for malformed data: a missing, undecodable or non-SLP
    output 0 makes the utxo NOT_SLP.
    """
    if not utxo.source_scriptpubkeys:
        return NOT_SLP
    try:
        script = bytes.fromhex(utxo.source_scriptpubkeys[0])
    except ValueError:
        return NOT_SLP

    message = try_decode_message(script)
    if message is None:
        return NOT_SLP

    if isinstance(message, SendMessage):
        quantities = message.output_quantities
        if 0 < utxo.vout < len(quantities):
            return Judgement(
                UtxoJudgement.SLP_TOKEN, quantities[utxo.vout], message, message.token_id
            )
        return Judgement(UtxoJudgement.NOT_SLP, message=message, token_id=message.token_id)

    # GENESIS creates the token, so its id is the creating txid
    if isinstance(message, GenesisMessage):
        token_id = utxo.txid
        quantity = message.initial_quantity
    else:
        token_id = message.token_id
        quantity = message.quantity

    if message.contains_baton and message.baton_vout == utxo.vout:
        return Judgement(UtxoJudgement.SLP_BATON, None, message, token_id)
    if utxo.vout == 1 and quantity > 0:
        return Judgement(UtxoJudgement.SLP_TOKEN, quantity, message, token_id)
    return Judgement(UtxoJudgement.NOT_SLP, message=message, token_id=token_id)


def compute_slp_balances(utxos: Sequence[SlpUtxo]) -> SlpBalancesResult:
    """Partition judged utxos into categories and total their balances."""
    result = SlpBalancesResult()

    for utxo in utxos:
        if utxo.judgement == UtxoJudgement.SLP_TOKEN:
            if utxo.token_id is None or utxo.judgement_amount is None:
                raise InternalConsistencyError(f"Token utxo {utxo.outpoint} has no token data")
            result.token_balances[utxo.token_id] = (
                result.token_balances.get(utxo.token_id, 0) + utxo.judgement_amount
            )
            result.token_utxos.setdefault(utxo.token_id, []).append(utxo)
            result.satoshis_in_slp_token += utxo.satoshis
        elif utxo.judgement == UtxoJudgement.SLP_BATON:
            if utxo.token_id is None:
                raise InternalConsistencyError(f"Baton utxo {utxo.outpoint} has no token id")
            result.baton_utxos.setdefault(utxo.token_id, []).append(utxo)
            result.satoshis_in_slp_baton += utxo.satoshis
        elif utxo.judgement == UtxoJudgement.INVALID_TOKEN_DAG:
            result.invalid_token_utxos.append(utxo)
            result.satoshis_in_invalid_token_dag += utxo.satoshis
        elif utxo.judgement == UtxoJudgement.INVALID_BATON_DAG:
            result.invalid_baton_utxos.append(utxo)
            result.satoshis_in_invalid_baton_dag += utxo.satoshis
        elif utxo.judgement == UtxoJudgement.NOT_SLP:
            result.non_slp_utxos.append(utxo)
            result.satoshis_available_bch += utxo.satoshis
        else:
            raise InternalConsistencyError(f"Utxo {utxo.outpoint} was never judged")

    return result


class UtxoClassifier:
    """
    Classifies utxos as plain coins, SLP tokens or minting batons.

    Batches passed to classify() are owned by the call until it returns;
    independent batches may be classified concurrently.
    """

    def __init__(self, validator: AncestryValidator, settings: Settings | None = None):
        self.validator = validator
        self.settings = settings or Settings()

    async def classify(
        self, utxos: Sequence[SlpUtxo], validator: AncestryValidator | None = None
    ) -> SlpBalancesResult:
        """
        Judge every utxo and return the resulting balances.

        Args:
            utxos: Utxos to classify; their judgement fields are overwritten
            validator: Validator to use instead of the one given at construction

        Returns:
            Balances and categorized utxos

        Raises:
            AncestryValidationError: If the validator fails or times out; no
                utxo is modified in that case
            InternalConsistencyError: If a utxo could not be categorized
        """
        validator = validator or self.validator

        judgements = [initial_judgement(utxo) for utxo in utxos]
        for utxo, judgement in zip(utxos, judgements):
            if judgement.judgement == UtxoJudgement.UNKNOWN:
                raise InternalConsistencyError(f"Utxo {utxo.outpoint} left initial pass unjudged")

        candidates = {
            utxo.txid for utxo, judgement in zip(utxos, judgements) if judgement.is_candidate
        }
        valid_txids = await self._validate(validator, candidates)

        final: list[Judgement] = []
        for utxo, judgement in zip(utxos, judgements):
            if judgement.is_candidate and utxo.txid not in valid_txids:
                logger.warning(f"Invalid token ancestry for {utxo.outpoint}")
                judgement = judgement.downgraded()
            final.append(judgement)

        # Commit only after the validator has answered
        for utxo, judgement in zip(utxos, final):
            utxo.judgement = judgement.judgement
            utxo.judgement_amount = judgement.amount
            utxo.message = judgement.message
            utxo.token_id = judgement.token_id
            logger.debug(f"{utxo.outpoint}: {judgement.judgement.value}")

        result = compute_slp_balances(utxos)

        if result.categorized_count() != len(utxos):
            logger.error(
                f"Categorized {result.categorized_count()} utxos out of {len(utxos)}"
            )
            raise InternalConsistencyError("Not all utxos have been categorized")

        logger.info(
            f"Classified {len(utxos)} utxos: "
            f"{sum(len(u) for u in result.token_utxos.values())} token, "
            f"{sum(len(u) for u in result.baton_utxos.values())} baton, "
            f"{len(result.invalid_token_utxos) + len(result.invalid_baton_utxos)} invalid"
        )
        return result

    async def _validate(self, validator: AncestryValidator, txids: set[str]) -> set[str]:
        timeout = self.settings.validator_timeout
        try:
            return await asyncio.wait_for(validator.validate_transactions(txids), timeout)
        except asyncio.TimeoutError as e:
            raise AncestryValidationError(
                f"Ancestry validation timed out after {timeout}s"
            ) from e
        except AncestryValidationError:
            raise
        except Exception as e:
            raise AncestryValidationError(f"Ancestry validation failed: {e}") from e
