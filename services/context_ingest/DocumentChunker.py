"""Paragraph- and sentence-aware splitting of extracted document text."""

import re

from shared.helper.HelperConfig import HelperConfig
from shared.models.document import TextChunk

SMALL_DOCUMENT_THRESHOLD = 2500  # characters; shorter documents stay whole
MAX_CHUNK_SIZE = 2000
MIN_CHUNK_SIZE = 500

CHUNK_SEPARATOR = "\n\n"

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+(?=[A-Z])")
_WHITESPACE_RUN = re.compile(r"\s+")


class DocumentChunker:
    """
    Splits long plain text into chunks of MIN..MAX characters.

    1. Text up to the small-document threshold is returned whole.
    2. Otherwise every paragraph (blank-line separated) becomes a piece.
       Paragraphs above the maximum are split into sentences and packed
       greedily. Single sentences above the maximum are split by words, and
       single words by characters.
    3. Adjacent pieces are merged while one of them is below the minimum.
       A run made only of small pieces never grows beyond twice the minimum.
    4. A non-final chunk that is still too small is combined with its
       successor and the pair is re-split near the middle.

    Every chunk except the last ends up within [min, max]. Only whitespace
    is dropped or inserted, so the non-whitespace content is preserved.
    """

    def __init__(self, helper_config: HelperConfig, small_document_threshold: int | None = None, max_chunk_size: int | None = None, min_chunk_size: int | None = None) -> None:
        self.logging = helper_config.get_logger()
        self.small_document_threshold = int(small_document_threshold or helper_config.get_number_val("CHUNK_SMALL_DOCUMENT_THRESHOLD", default=SMALL_DOCUMENT_THRESHOLD))
        self.max_chunk_size = int(max_chunk_size or helper_config.get_number_val("CHUNK_MAX_SIZE", default=MAX_CHUNK_SIZE))
        self.min_chunk_size = int(min_chunk_size or helper_config.get_number_val("CHUNK_MIN_SIZE", default=MIN_CHUNK_SIZE))

        if self.min_chunk_size <= 0 or 2 * self.min_chunk_size > self.max_chunk_size:
            raise ValueError(
                f"Invalid chunk bounds: min={self.min_chunk_size}, max={self.max_chunk_size}. "
                "The maximum must be at least twice the minimum."
            )

    ##########################################
    ################ CORE ####################
    ##########################################

    def split(self, text: str) -> list[TextChunk]:
        """Split text into ordered, numbered chunks.

        Args:
            text (str): Extracted plain text.

        Returns:
            list[TextChunk]: Empty for blank input, a single chunk for small documents.
        """
        text = (text or "").strip()
        if not text:
            return []
        if len(text) <= self.small_document_threshold:
            return [TextChunk(index=0, total=1, text=text)]

        pieces = self._split_paragraphs(text)
        pieces = self._merge_small(pieces)
        pieces = self._rebalance(pieces)

        self.logging.debug("Split %d characters into %d chunk(s).", len(text), len(pieces))
        return [TextChunk(index=i, total=len(pieces), text=piece) for i, piece in enumerate(pieces)]

    ##########################################
    ############### SPLITTING ################
    ##########################################

    def _split_paragraphs(self, text: str) -> list[str]:
        pieces = []
        for paragraph in _PARAGRAPH_BREAK.split(text):
            paragraph = paragraph.strip()
            if not paragraph:
                continue
            if len(paragraph) <= self.max_chunk_size:
                pieces.append(paragraph)
            else:
                pieces.extend(self._pack(self._split_sentences(paragraph), joiner=" "))
        return pieces

    def _split_sentences(self, paragraph: str) -> list[str]:
        sentences = []
        for sentence in _SENTENCE_BREAK.split(paragraph):
            sentence = sentence.strip()
            if not sentence:
                continue
            if len(sentence) <= self.max_chunk_size:
                sentences.append(sentence)
            else:
                sentences.extend(self._pack(self._split_words(sentence), joiner=" "))
        return sentences

    def _split_words(self, sentence: str) -> list[str]:
        words = []
        for word in sentence.split():
            if len(word) <= self.max_chunk_size:
                words.append(word)
            else:
                words.extend(word[i: i + self.max_chunk_size] for i in range(0, len(word), self.max_chunk_size))
        return words

    def _pack(self, parts: list[str], joiner: str) -> list[str]:
        """Greedily join parts until the next one would exceed the maximum."""
        packed = []
        current = ""
        for part in parts:
            candidate = f"{current}{joiner}{part}" if current else part
            if len(candidate) <= self.max_chunk_size:
                current = candidate
                continue
            if current:
                packed.append(current)
            current = part
        if current:
            packed.append(current)
        return packed

    ##########################################
    ############### MERGING ##################
    ##########################################

    def _merge_small(self, pieces: list[str]) -> list[str]:
        # (text, built only from small pieces)
        merged: list[tuple[str, bool]] = []
        for piece in pieces:
            piece_small = len(piece) < self.min_chunk_size
            if merged:
                previous, small_run = merged[-1]
                combined_length = len(previous) + len(CHUNK_SEPARATOR) + len(piece)
                limit = 2 * self.min_chunk_size if small_run and piece_small else self.max_chunk_size
                if (len(previous) < self.min_chunk_size or piece_small) and combined_length <= limit:
                    merged[-1] = (previous + CHUNK_SEPARATOR + piece, small_run and piece_small)
                    continue
            merged.append((piece, piece_small))
        return [text for text, _ in merged]

    def _rebalance(self, pieces: list[str]) -> list[str]:
        pieces = list(pieces)
        i = 0
        while i < len(pieces) - 1:
            if len(pieces[i]) >= self.min_chunk_size:
                i += 1
                continue
            combined = pieces[i] + CHUNK_SEPARATOR + pieces[i + 1]
            if len(combined) <= self.max_chunk_size:
                pieces[i: i + 2] = [combined]
                continue
            pieces[i: i + 2] = self._split_near_middle(combined)
            i += 1
        return pieces

    def _split_near_middle(self, text: str) -> list[str]:
        """Cut text in two parts that both lie within [min, max]."""
        middle = len(text) / 2
        best = None
        for match in _WHITESPACE_RUN.finditer(text):
            left_length, right_length = match.start(), len(text) - match.end()
            if not (self.min_chunk_size <= left_length <= self.max_chunk_size):
                continue
            if not (self.min_chunk_size <= right_length <= self.max_chunk_size):
                continue
            if best is None or abs(match.start() - middle) < abs(best.start() - middle):
                best = match
        if best is not None:
            return [text[: best.start()], text[best.end():]]

        # no usable whitespace: hard cut inside the allowed window
        low = max(self.min_chunk_size, len(text) - self.max_chunk_size)
        high = min(self.max_chunk_size, len(text) - self.min_chunk_size)
        cut = min(max(int(middle), low), high)
        return [text[:cut], text[cut:]]
