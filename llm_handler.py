import re
import json
import time

from openai import OpenAI
from pydantic import ValidationError

from prompt_builder import build_response_format, sampling_temperature
from retry_policy import FetchState, RetryPolicy, RetryStateMachine
from study_models import StudyDocument


class FetchError(Exception):
    """A study could not be obtained from the language model."""

    status_code = None

    def __init__(self, message, raw_output=None):
        super().__init__(message)
        self.message = message
        self.raw_output = raw_output


class EmptyResponseError(FetchError):
    def __init__(self, raw_output=None):
        super().__init__("Empty response from the language model.", raw_output)


class ResponseShapeError(FetchError):
    """The payload was not JSON, or did not match the study document model."""


class StructuredOutputRefusal(FetchError):
    # The model declined to produce conforming output; asking again won't help.
    status_code = 422


class LLMNotConfiguredError(FetchError):
    def __init__(self):
        super().__init__("LLM service is not configured on the server.")


DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"


def create_client(api_key, base_url=DEFAULT_BASE_URL, http_client=None):
    """
    OpenAI client for an OpenAI-compatible endpoint (OpenRouter by default).

    SDK retries are disabled: LLMHandler.fetch_study is the only retry layer,
    so one handler attempt is exactly one remote call.
    """
    return OpenAI(
        api_key=api_key,
        base_url=base_url,
        max_retries=0,
        http_client=http_client,
    )


class LLMHandler:
    def __init__(self, client, logger, model_name, retry_policy=None, sleep=time.sleep):
        self.client = client
        self.logger = logger
        self.model_name = model_name
        self.retry_policy = retry_policy or RetryPolicy()
        self.sleep = sleep

    @property
    def is_configured(self):
        return self.client is not None

    def _extract_json_from_llm_output(self, raw_llm_output):
        """
        Extracts and cleans a JSON object string from the LLM output.
        Strips code fences (``` or ```json) and invisible unicode characters.
        Structured output normally arrives bare; some OpenAI-compatible
        providers still wrap it.
        """
        content = raw_llm_output.strip()

        fence_pattern = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.DOTALL)
        match = fence_pattern.search(content)
        if match:
            content = match.group(1).strip()

        content = content.replace("\u200b", "")
        content = content.replace("\ufeff", "")
        return content

    def _parse_study_document(self, raw_llm_output):
        extracted_json_str = self._extract_json_from_llm_output(raw_llm_output)
        try:
            payload = json.loads(extracted_json_str)
        except json.JSONDecodeError as e:
            raise ResponseShapeError(
                f"LLM response is not valid JSON: {e}", raw_llm_output
            ) from e

        if not isinstance(payload, dict):
            raise ResponseShapeError(
                "LLM response is not a JSON object.", raw_llm_output
            )

        try:
            return StudyDocument.model_validate(payload)
        except ValidationError as e:
            raise ResponseShapeError(
                f"LLM response does not match the study shape: {e.error_count()} error(s). {e}",
                raw_llm_output,
            ) from e

    def _request_document(self, instructions, output_schema, temperature):
        start_time = time.monotonic()
        completion = self.client.chat.completions.create(
            model=self.model_name,
            messages=[{"role": "user", "content": instructions}],
            response_format=build_response_format(output_schema),
            temperature=temperature,
        )
        latency_ms = (time.monotonic() - start_time) * 1000

        message = completion.choices[0].message if completion.choices else None
        prompt_tokens = completion.usage.prompt_tokens if completion.usage else 0
        completion_tokens = (
            completion.usage.completion_tokens if completion.usage else 0
        )
        self.logger.info(
            f"LLM responded in {latency_ms:.0f} ms. Tokens: prompt={prompt_tokens}, completion={completion_tokens}"
        )

        if message is not None and getattr(message, "refusal", None):
            raise StructuredOutputRefusal(
                f"LLM refused to produce a structured study: {message.refusal}"
            )

        raw_llm_output = message.content if message is not None else ""
        if not raw_llm_output or not raw_llm_output.strip():
            raise EmptyResponseError(raw_llm_output)

        return self._parse_study_document(raw_llm_output)

    def fetch_study(self, instructions, output_schema, depth):
        """
        Asks the model for one study document, retrying transient failures.

        Returns the validated (not yet normalized) StudyDocument. On a terminal
        error, or once every attempt has failed, the last error is re-raised
        as it was received.
        """
        if not self.is_configured:
            self.logger.error(
                "OpenAI client not initialized. LLM functionality disabled."
            )
            raise LLMNotConfiguredError()

        temperature = sampling_temperature(depth)
        machine = RetryStateMachine(self.retry_policy)

        while True:
            attempt = machine.start_attempt()
            self.logger.info(
                f"LLM API Call Attempt {attempt}/{self.retry_policy.max_attempts}. Model: '{self.model_name}'. Temperature: {temperature}"
            )
            try:
                document = self._request_document(
                    instructions, output_schema, temperature
                )
            except Exception as e:
                state = machine.record_failure(e)
                status = self.retry_policy.status_code_of(e)
                if state is FetchState.TERMINAL_FAILURE:
                    self.logger.error(
                        f"LLM call failed on attempt {attempt} (status: {status}), giving up: {e}"
                    )
                    raise

                delay = machine.begin_wait()
                self.logger.warning(
                    f"LLM call failed on attempt {attempt} (status: {status}): {e}. Retrying in {delay:.1f}s."
                )
                self.sleep(delay)
                machine.resume()
                continue

            machine.record_success()
            return document
