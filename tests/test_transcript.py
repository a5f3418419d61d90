import pytest

from mcp_bridge.transcript import Transcript
from mcp_bridge.types import AssistantText, AssistantToolRequest, ToolResult, UserText


@pytest.fixture
def request_a():
    return AssistantToolRequest(id="a", tool_name="lookup", arguments={"term": "x"})


class TestTranscript:
    def test_append_and_index(self, request_a):
        transcript = Transcript([UserText("hi")])
        transcript.append(request_a)
        transcript.append(ToolResult(id="r1", request_id="a", content="ok"))

        assert len(transcript) == 3
        assert transcript[0] == UserText("hi")
        assert transcript[-1].request_id == "a"
        assert transcript[:2] == (UserText("hi"), request_a)

    def test_rejects_non_entries(self):
        with pytest.raises(TypeError):
            Transcript().append({"role": "user", "content": "hi"})

    def test_rejects_result_for_unknown_request(self):
        transcript = Transcript([UserText("hi")])
        with pytest.raises(ValueError, match="unknown request"):
            transcript.append(ToolResult(id="r1", request_id="nope", content=""))

    def test_rejects_second_answer(self, request_a):
        transcript = Transcript([request_a, ToolResult(id="r1", request_id="a", content="")])
        with pytest.raises(ValueError, match="already answered"):
            transcript.append(ToolResult(id="r2", request_id="a", content=""))

    def test_rejects_duplicate_request_id(self, request_a):
        transcript = Transcript([request_a])
        with pytest.raises(ValueError, match="Duplicate"):
            transcript.append(request_a)

    def test_unpaired_and_consistency(self, request_a):
        request_b = AssistantToolRequest(id="b", tool_name="lookup", arguments={})
        transcript = Transcript([UserText("q"), request_a, request_b])

        assert not transcript.is_consistent
        assert transcript.unpaired_requests() == [request_a, request_b]

        transcript.append(ToolResult(id="r1", request_id="b", content="B"))
        assert transcript.unpaired_requests() == [request_a]

        transcript.append(ToolResult(id="r2", request_id="a", content="A"))
        assert transcript.is_consistent
        assert [(req.id, res.content) for req, res in transcript.tool_exchanges()] == [
            ("a", "A"),
            ("b", "B"),
        ]

    def test_text_only_transcript_is_consistent(self):
        assert Transcript([UserText("q"), AssistantText("a")]).is_consistent

    def test_iteration_is_a_snapshot(self):
        transcript = Transcript([UserText("q")])
        seen = []
        for entry in transcript:
            seen.append(entry)
            if len(seen) == 1:
                transcript.append(AssistantText("a"))
        assert seen == [UserText("q")]
        assert len(transcript) == 2

    def test_rejected_batch_appends_nothing(self, request_a):
        transcript = Transcript([UserText("q")])
        with pytest.raises(ValueError, match="Duplicate"):
            transcript.extend([request_a, request_a])

        assert len(transcript) == 1
        assert transcript.request_ids() == frozenset()
        assert transcript.is_consistent

    def test_request_ids(self, request_a):
        transcript = Transcript([UserText("q"), request_a])
        assert transcript.request_ids() == frozenset({"a"})
