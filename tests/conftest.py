import asyncio
from typing import List, Optional

import pytest

from medlens.contracts import DrugEntity
from medlens.knowledge import KnowledgeGraphStore
from medlens.store import InMemoryDocumentStore

SAMPLE_REPORT = """City General Hospital
Patient Name: John Smith
Age: 45
Gender: Male
Patient ID: P-1234
Date: 03/15/2024
Physician: Dr. Sarah Lee

Hemoglobin: 11.2 g/dL (13.5-17.5)
Glucose: 105 mg/dL (70-100)
Platelets: 250 K/uL (150-400)

Medications:
Paracetamol 500 mg twice daily

Blood Pressure: 130/85
Heart Rate: 72

Diagnosis: Mild anemia
"""


class FakeCompletionClient:
    def __init__(self, reply: Optional[str] = None, configured: bool = True, error: Exception = None):
        self.reply = reply
        self._configured = configured
        self.error = error
        self.prompts: List[str] = []

    @property
    def configured(self) -> bool:
        return self._configured

    async def complete(self, prompt: str) -> Optional[str]:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


class FakePharmaceuticalAPI:
    sources = ["Fake Pharma"]

    def __init__(self, drug: Optional[DrugEntity] = None, delay: float = 0.0, error: Exception = None):
        self.drug = drug
        self.delay = delay
        self.error = error
        self.calls: List[str] = []
        self.closed = False

    async def lookup(self, query: str) -> Optional[DrugEntity]:
        self.calls.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.drug.model_copy(deep=True) if self.drug is not None else None

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
async def knowledge(store):
    graph = KnowledgeGraphStore(store)
    await graph.initialize()
    return graph
