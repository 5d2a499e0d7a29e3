"""
Trace line grammar.

    <timestamp>, <traceId>, <stageA> (->|<-) <stageB>, <rest>

timestamp is decimal, traceId is hex with a 0x prefix. The arrow is
normalised so from_stage -> to_stage always follows the causal flow:
"A -> B" is a send from A to B, "A <- B" is a flow-control frame from B
back to A.
"""

import re
from dataclasses import dataclass

from ..core.errors import LineFormatError


LINE_PATTERN = re.compile(
    r"(?P<timestamp>\d+),\s"
    r"(?P<trace_id>0x\S+),\s"
    r"(?P<stage1>\S+)\s"
    r"(?P<direction>->|<-)\s"
    r"(?P<stage2>\S+),"
    r".*",
    re.ASCII,
)


@dataclass(frozen=True)
class ParsedTraceEvent:
    """One observation: trace_id left from_stage and reached to_stage."""
    timestamp: int
    trace_id: int
    from_stage: str
    to_stage: str


def parse_line(line: str, line_number: int = 0) -> ParsedTraceEvent:
    """
    Parse one log line.

    Raises:
        LineFormatError: If the line does not match the grammar
    """
    text = line.rstrip('\r\n')
    match = LINE_PATTERN.fullmatch(text)
    if match is None:
        raise LineFormatError(text, line_number)

    try:
        trace_id = int(match.group('trace_id'), 16)
    except ValueError:
        raise LineFormatError(text, line_number) from None

    if match.group('direction') == '->':
        from_stage, to_stage = match.group('stage1'), match.group('stage2')
    else:
        from_stage, to_stage = match.group('stage2'), match.group('stage1')

    return ParsedTraceEvent(
        timestamp=int(match.group('timestamp')),
        trace_id=trace_id,
        from_stage=from_stage,
        to_stage=to_stage,
    )
