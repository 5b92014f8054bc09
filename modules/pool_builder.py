# modules/pool_builder.py
import logging
import random
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from core.constants import (FALLBACK_PREFIXES, LATENCY_RANGE, MAX_IP_COUNT,
                            SYNTHESIS_MAX_ATTEMPTS)
from core.ip_utils import IPUtils
from core.models import AddressRecord, AddressStatus, GenerationError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, List[AddressRecord]], None]


class AddressPoolBuilder:
    """
    Builds one pass worth of unique addresses.

    Model suggestions are taken first, in the order supplied; the rest of the
    pool is synthesized from the fallback prefix table. The seen set is never
    mutated: each pass returns a new one for the caller to keep.
    """

    def __init__(self, suggester=None, rng: random.Random = None,
                 prefixes: List[str] = None, max_count: int = MAX_IP_COUNT,
                 max_attempts: int = SYNTHESIS_MAX_ATTEMPTS):
        self.suggester = suggester
        self.rng = rng or random.Random()
        self.prefixes = list(prefixes or FALLBACK_PREFIXES)
        self.max_count = max_count
        self.max_attempts = max_attempts
        self.ip_utils = IPUtils()
        self.stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {'suggested': 0, 'from_model': 0, 'rejected': 0, 'outside_cdn': 0, 'synthesized': 0}

    def validate_count(self, requested_count) -> int:
        if isinstance(requested_count, bool) or not isinstance(requested_count, int):
            raise ValueError(f"requested count must be an integer, got {requested_count!r}")
        if not 1 <= requested_count <= self.max_count:
            raise ValueError(f"requested count must be between 1 and {self.max_count}")
        return requested_count

    def select_suggestions(self, requested_count: int, seen: Set[str], suggestions) -> List[str]:
        """Well-formed, unseen, in-pass unique suggestions, capped at the requested count"""
        if not isinstance(suggestions, list):
            suggestions = []

        selected = []
        taken = set()
        for candidate in suggestions:
            if len(selected) >= requested_count:
                break
            ip = self.ip_utils.normalize(candidate)
            if ip is None or ip in seen or ip in taken:
                self.stats['rejected'] += 1
                logger.debug(f"Discarding suggestion {candidate!r}")
                continue
            if not self.ip_utils.is_cdn_ip(ip):
                self.stats['outside_cdn'] += 1
            selected.append(ip)
            taken.add(ip)

        self.stats['suggested'] = len(suggestions)
        self.stats['from_model'] = len(selected)
        return selected

    def synthesize(self, count: int, excluded: Set[str]) -> List[str]:
        """
        Draw `count` fresh addresses as random prefix + two random octets.

        Raises GenerationError after `max_attempts` consecutive collisions.
        """
        generated = []
        taken = set(excluded)
        misses = 0
        while len(generated) < count:
            prefix = self.rng.choice(self.prefixes)
            ip = f"{prefix}.{self.rng.randint(0, 255)}.{self.rng.randint(0, 255)}"
            if ip in taken:
                misses += 1
                if misses >= self.max_attempts:
                    raise GenerationError(
                        f"No unused fallback address after {misses} attempts "
                        f"({len(generated)} of {count} generated)")
                continue
            misses = 0
            generated.append(ip)
            taken.add(ip)

        self.stats['synthesized'] += len(generated)
        return generated

    def make_record(self, ip: str) -> AddressRecord:
        return AddressRecord(
            address=ip,
            latency_ms=self.rng.randrange(*LATENCY_RANGE),
            provider=self.ip_utils.provider_for(ip),
            status=AddressStatus.ACCEPTED
        )

    def assemble(self, requested_count: int, seen: Iterable[str], suggestions,
                 progress: Optional[ProgressCallback] = None) -> Tuple[List[AddressRecord], frozenset]:
        """Turn a suggestion list into exactly `requested_count` records"""
        self.validate_count(requested_count)
        self.stats = self._empty_stats()
        seen = frozenset(seen)

        addresses = self.select_suggestions(requested_count, seen, suggestions)
        missing = requested_count - len(addresses)
        if missing:
            logger.info(f"Synthesizing {missing} fallback addresses "
                        f"({len(addresses)} usable model suggestions)")
            addresses.extend(self.synthesize(missing, seen.union(addresses)))

        records = []
        for ip in addresses:
            records.append(self.make_record(ip))
            if progress:
                progress(len(records), requested_count, list(records))

        return records, seen.union(addresses)

    def build_pool(self, requested_count: int, seen: Iterable[str],
                   progress: Optional[ProgressCallback] = None) -> Tuple[List[AddressRecord], frozenset]:
        """
        Run one generation pass.

        Args:
            requested_count: Number of records wanted (1..max_count)
            seen: Addresses returned by earlier passes
            progress: Called after each record with (done, total, snapshot)

        Returns:
            The records and the seen set extended with this pass
        """
        self.validate_count(requested_count)
        seen = frozenset(seen)

        suggestions = []
        if self.suggester is not None:
            try:
                suggestions = self.suggester.suggest(requested_count, seen)
            except Exception as e:
                logger.error(f"AI generation failed, using fallback generation: {e}")
                suggestions = []

        return self.assemble(requested_count, seen, suggestions, progress)
