"""
Decoding of flashcard-generation workflow replies

The workflow answers with {"output": {"flashcards": [{id, question, answer}]}},
sometimes wrapped in a list. Each shape is matched explicitly and every
fallback branch is logged on its own.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

DECODE_OK = "ok"
DECODE_NOT_OBJECT = "not_json_object"
DECODE_MISSING_OUTPUT = "missing_output"
DECODE_NOT_LIST = "flashcards_not_list"
DECODE_EMPTY = "empty"


@dataclass
class FlashcardItem:
    flashcard_id: Optional[str]
    question: str
    answer: str


@dataclass
class FlashcardDecodeResult:
    kind: str
    cards: List[FlashcardItem] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.kind == DECODE_OK


def _unwrap(data: Any) -> Any:
    if isinstance(data, list):
        logger.info(f"Flashcard response is a list with {len(data)} elements")
        return data[0] if data else None
    return data


def decode_flashcard_response(data: Any) -> FlashcardDecodeResult:
    """
    Turn a workflow reply into flashcard items

    Args:
        data: Parsed JSON reply

    Returns:
        FlashcardDecodeResult whose kind names the matched shape
    """
    payload = _unwrap(data)

    if not isinstance(payload, dict):
        logger.error(f"Unexpected flashcard response type: {type(payload).__name__}")
        return FlashcardDecodeResult(DECODE_NOT_OBJECT)

    output = payload.get("output")
    if not isinstance(output, dict):
        logger.error(f"No output object in flashcard response (keys: {list(payload.keys())})")
        return FlashcardDecodeResult(DECODE_MISSING_OUTPUT)

    raw_cards = output.get("flashcards")
    if not isinstance(raw_cards, list):
        logger.error(f"output.flashcards is not a list: {type(raw_cards).__name__}")
        return FlashcardDecodeResult(DECODE_NOT_LIST)

    cards = []
    for index, raw in enumerate(raw_cards):
        if not isinstance(raw, dict):
            logger.warning(f"Skipping flashcard {index}: not an object")
            continue
        question = raw.get("question")
        answer = raw.get("answer")
        if not (isinstance(question, str) and question.strip() and isinstance(answer, str) and answer.strip()):
            logger.warning(f"Skipping flashcard {index}: missing question or answer")
            continue
        card_id = raw.get("id")
        cards.append(
            FlashcardItem(
                flashcard_id=str(card_id) if card_id is not None else None,
                question=question,
                answer=answer,
            )
        )

    if not cards:
        logger.error("Flashcard response contained no usable flashcards")
        return FlashcardDecodeResult(DECODE_EMPTY)

    logger.info(f"Decoded {len(cards)} flashcards")
    return FlashcardDecodeResult(DECODE_OK, cards)
