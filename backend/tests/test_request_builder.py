import unittest

from paragoniusz.services.ai.common.errors import ConfigurationError, ErrorKind
from paragoniusz.services.ai.common.providers.base import (
    ModelParameters,
    ResponseSchema,
    image_data_uri,
    image_part,
    text_part,
)
from paragoniusz.services.ai.common.request_builder import OpenRouterRequestBuilder

SCHEMA = ResponseSchema(
    name="receipt_extraction",
    schema={"type": "object", "properties": {"total": {"type": "number"}}, "required": ["total"]},
)


class RequestBuilderTests(unittest.TestCase):
    def test_build_full_request(self):
        request = (
            OpenRouterRequestBuilder()
            .set_model("openai/gpt-4o-mini")
            .add_system_message("You extract receipts.")
            .add_user_message("Extract this.")
            .set_response_schema(SCHEMA)
            .set_parameters(ModelParameters(temperature=0.1, max_tokens=2000))
            .build()
        )

        self.assertEqual(request["model"], "openai/gpt-4o-mini")
        self.assertEqual(
            request["messages"],
            [
                {"role": "system", "content": "You extract receipts."},
                {"role": "user", "content": "Extract this."},
            ],
        )
        self.assertEqual(
            request["response_format"],
            {
                "type": "json_schema",
                "json_schema": {"name": "receipt_extraction", "strict": True, "schema": SCHEMA.schema},
            },
        )
        self.assertEqual(request["temperature"], 0.1)
        self.assertEqual(request["max_tokens"], 2000)
        self.assertNotIn("top_p", request)

    def test_messages_keep_insertion_order(self):
        request = (
            OpenRouterRequestBuilder()
            .set_model("m")
            .add_user_message("first")
            .add_system_message("second")
            .add_user_message("third")
            .build()
        )
        self.assertEqual([m["content"] for m in request["messages"]], ["first", "second", "third"])

    def test_multimodal_user_message(self):
        uri = image_data_uri(b"\xff\xd8\xff", "image/png")
        request = (
            OpenRouterRequestBuilder()
            .set_model("m")
            .add_user_message([text_part("Read it"), image_part(uri)])
            .build()
        )
        content = request["messages"][0]["content"]
        self.assertEqual(content[0], {"type": "text", "text": "Read it"})
        self.assertEqual(content[1]["type"], "image_url")
        self.assertTrue(content[1]["image_url"]["url"].startswith("data:image/png;base64,"))

    def test_missing_model_fails(self):
        builder = OpenRouterRequestBuilder().add_user_message("hi")
        with self.assertRaises(ConfigurationError) as ctx:
            builder.build()
        self.assertEqual(ctx.exception.kind, ErrorKind.CONFIGURATION)
        self.assertEqual(ctx.exception.message, "Model and messages are required")

    def test_missing_messages_fails(self):
        with self.assertRaises(ConfigurationError):
            OpenRouterRequestBuilder().set_model("m").build()

    def test_none_parameters_do_not_overwrite(self):
        request = (
            OpenRouterRequestBuilder()
            .set_model("m")
            .add_user_message("hi")
            .set_parameters(ModelParameters(temperature=0.5, top_p=0.9))
            .set_parameters(ModelParameters(max_tokens=10))
            .build()
        )
        self.assertEqual(request["temperature"], 0.5)
        self.assertEqual(request["top_p"], 0.9)
        self.assertEqual(request["max_tokens"], 10)

    def test_build_returns_independent_copy(self):
        builder = OpenRouterRequestBuilder().set_model("m").add_user_message("hi")
        first = builder.build()
        first["messages"].append({"role": "user", "content": "mutated"})
        builder.add_user_message("again")

        second = builder.build()
        self.assertEqual(len(first["messages"]), 2)
        self.assertEqual([m["content"] for m in second["messages"]], ["hi", "again"])

    def test_reset_clears_state(self):
        builder = OpenRouterRequestBuilder().set_model("m").add_user_message("hi")
        builder.reset()
        with self.assertRaises(ConfigurationError):
            builder.build()
        request = builder.set_model("other").add_user_message("fresh").build()
        self.assertEqual(request["messages"], [{"role": "user", "content": "fresh"}])
