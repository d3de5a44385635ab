from __future__ import annotations
import httpx
from typing import Any, Dict, List, Optional
from .settings import settings

class GeminiClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		http_client: Optional[httpx.AsyncClient] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		self.model = model or settings.gemini_model
		self.provider = settings.gemini_provider
		# base_url may contain "{model}"; every feature picks its own model
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{{model}}:generateContent"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			self.base_url = base_url or "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
			self._auth_in_query = True
		self._owns_client = http_client is None
		self._client = http_client or httpx.AsyncClient(timeout=settings.gemini_timeout_seconds)
		self._fallback_client: Optional[httpx.AsyncClient] = None
		self._fallback_enabled = bool(settings.openrouter_api_key)
		self._openrouter_api_key = settings.openrouter_api_key
		self._openrouter_model = settings.openrouter_model
		self._openrouter_base_url = settings.openrouter_base_url
		self._openrouter_headers = {
			"Authorization": f"Bearer {self._openrouter_api_key}" if self._openrouter_api_key else "",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		if self._fallback_enabled:
			self._fallback_client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds)

	def endpoint(self, model: Optional[str] = None) -> str:
		return self.base_url.replace("{model}", model or self.model)

	async def generate(
		self,
		prompt: str,
		*,
		model: Optional[str] = None,
		response_schema: Optional[Dict[str, Any]] = None,
		thinking_budget: Optional[int] = None,
	) -> str:
		return await self.generate_multimodal(
			[{"text": prompt}],
			model=model,
			response_schema=response_schema,
			thinking_budget=thinking_budget,
			fallback_prompt=prompt,
		)

	async def generate_multimodal(
		self,
		parts: List[Dict[str, Any]],
		*,
		role: str = "user",
		model: Optional[str] = None,
		response_schema: Optional[Dict[str, Any]] = None,
		thinking_budget: Optional[int] = None,
		fallback_prompt: Optional[str] = None,
	) -> str:
		payload: Dict[str, Any] = {"contents": [{"role": role, "parts": parts}]}
		if response_schema is not None:
			payload["generationConfig"] = {
				"responseMimeType": "application/json",
				"responseSchema": response_schema,
			}
		# Only free text may be answered by the OpenRouter fallback
		allow_fallback = response_schema is None and fallback_prompt is not None
		try:
			data = await self._post_payload(payload, model=model, thinking_budget=thinking_budget)
			return _first_part(data)["text"]
		except Exception as primary_error:
			if not allow_fallback or not self._fallback_enabled:
				raise
			return await self._fallback_generate(fallback_prompt, primary_error)

	async def generate_speech(self, text: str, *, voice: Optional[str] = None, model: Optional[str] = None) -> str:
		"""Return base64-encoded 16-bit PCM for `text` (24 kHz mono on current TTS models)."""
		payload: Dict[str, Any] = {
			"contents": [{"parts": [{"text": text}]}],
			"generationConfig": {
				"responseModalities": ["AUDIO"],
				"speechConfig": {
					"voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice or settings.gemini_tts_voice}},
				},
			},
		}
		data = await self._post_payload(payload, model=model or settings.gemini_model_tts)
		part = _first_part(data)
		inline = part.get("inlineData") or part.get("inline_data") or {}
		audio = inline.get("data")
		if not audio:
			raise RuntimeError("No audio data received from Gemini")
		return audio

	async def _post_payload(
		self,
		payload: Dict[str, Any],
		*,
		model: Optional[str] = None,
		thinking_budget: Optional[int] = None,
	) -> Dict[str, Any]:
		if not self.api_key:
			raise RuntimeError("GEMINI_API_KEY is not configured")
		url = self.endpoint(model)
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		if thinking_budget is not None:
			try:
				budget_tokens = int(thinking_budget)
			except Exception:
				budget_tokens = 0
			config = dict(payload.get("generationConfig") or {})
			config["thinkingConfig"] = {"thinkingBudget": budget_tokens}
			payload = {**payload, "generationConfig": config}
		try:
			r = await self._client.post(url, params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError:
			if thinking_budget is None:
				raise
			# Some models reject thinkingConfig; retry once without it
			config = dict(payload["generationConfig"])
			config.pop("thinkingConfig", None)
			fallback_payload = {k: v for k, v in payload.items() if k != "generationConfig"}
			if config:
				fallback_payload["generationConfig"] = config
			r = await self._client.post(url, params=params, headers=headers, json=fallback_payload)
			r.raise_for_status()
		try:
			return r.json()
		except ValueError as err:
			raise RuntimeError(f"Unexpected Gemini response: {r.text}") from err

	async def aclose(self) -> None:
		if self._owns_client:
			await self._client.aclose()
		if self._fallback_client is not None:
			await self._fallback_client.aclose()

	async def _fallback_generate(self, prompt: str, primary_error: Optional[Exception]) -> str:
		if not self._fallback_client or not self._openrouter_api_key:
			raise primary_error or RuntimeError("Fallback requested but OpenRouter is not configured")
		headers = {k: v for k, v in self._openrouter_headers.items() if v}
		payload: Dict[str, Any] = {
			"model": self._openrouter_model,
			"messages": [{"role": "user", "content": prompt}],
		}
		try:
			r = await self._fallback_client.post(
				self._openrouter_base_url,
				headers=headers,
				json=payload,
			)
			r.raise_for_status()
			data = r.json()
			return data["choices"][0]["message"]["content"]
		except Exception as fallback_err:
			if primary_error is not None:
				raise RuntimeError(
					f"Gemini primary call failed ({primary_error}); fallback via OpenRouter also failed"
				) from fallback_err
			raise fallback_err


def _first_part(data: Dict[str, Any]) -> Dict[str, Any]:
	try:
		return data["candidates"][0]["content"]["parts"][0]
	except (KeyError, IndexError, TypeError) as err:
		raise RuntimeError(f"Unexpected Gemini response: {data}") from err
