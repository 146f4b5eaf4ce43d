"""
Type definitions and data classes for predictability estimation

Contains the shared value types passed between the distribution builder,
information metrics, semantic estimator, aggregator and guidance engine.
Serialisation helpers follow the camelCase JSON contract used by HTTP and CLI
callers.
"""

from types import MappingProxyType
from typing import Dict, List, Any, Optional, Mapping, Iterator
from dataclasses import dataclass, field

from ..core.exceptions import ValidationError, OracleError

STAKES = ('low', 'medium', 'high')
EXPERTISE = ('novice', 'intermediate', 'expert')
GUIDANCE_CATEGORIES = ('interface', 'explanation', 'trust', 'transition')

OUTPUT_VERSION = "0.1.0"


def clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


@dataclass(frozen=True)
class Distribution:
    """Immutable probability mass function over output strings"""
    masses: Mapping[str, float]

    def __post_init__(self):
        object.__setattr__(self, 'masses', MappingProxyType(dict(self.masses)))

    def __len__(self) -> int:
        return len(self.masses)

    def __iter__(self) -> Iterator[str]:
        return iter(self.masses)

    def __contains__(self, outcome: object) -> bool:
        return outcome in self.masses

    def get(self, outcome: str, default: Optional[float] = None) -> Optional[float]:
        return self.masses.get(outcome, default)

    def items(self):
        return self.masses.items()

    def total(self) -> float:
        return sum(self.masses.values())


@dataclass(frozen=True)
class EmpiricalDistribution(Distribution):
    """P_t: observed output frequencies over the non-empty trimmed samples"""
    valid_count: int = 0


@dataclass(frozen=True)
class TemporalMetrics:
    """Normalised entropy and distinct-output rate for a sample set"""
    entropy: float
    variation_rate: float


@dataclass
class SystemProfile:
    """Deployment context of the evaluated system"""
    stakes: str = 'medium'
    expertise: str = 'intermediate'
    confidence_badges: bool = False
    interrupt_button: bool = False
    safe_mode: bool = False
    rationale_view: bool = False

    def __post_init__(self):
        if self.stakes not in STAKES:
            raise ValidationError(f"Unknown stakes '{self.stakes}', expected one of {STAKES}")
        if self.expertise not in EXPERTISE:
            raise ValidationError(f"Unknown expertise '{self.expertise}', expected one of {EXPERTISE}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SystemProfile':
        if not isinstance(data, dict):
            raise ValidationError("profile must be a JSON object")
        return cls(
            stakes=data.get('stakes', 'medium'),
            expertise=data.get('expertise', 'intermediate'),
            confidence_badges=bool(data.get('confidenceBadges', False)),
            interrupt_button=bool(data.get('interruptButton', False)),
            safe_mode=bool(data.get('safeMode', False)),
            rationale_view=bool(data.get('rationaleView', False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'stakes': self.stakes,
            'expertise': self.expertise,
            'confidenceBadges': self.confidence_badges,
            'interruptButton': self.interrupt_button,
            'safeMode': self.safe_mode,
            'rationaleView': self.rationale_view,
        }


@dataclass
class UserExpectations:
    """What the user believes the system will produce"""
    expected_output: Optional[str] = None
    expected_variation: Optional[float] = None  # in [0, 1]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserExpectations':
        if not isinstance(data, dict):
            raise ValidationError("userExpectations must be a JSON object")
        expected_output = data.get('expectedOutput')
        if expected_output is not None and not isinstance(expected_output, str):
            raise ValidationError("expectedOutput must be a string")
        if isinstance(expected_output, str) and not expected_output.strip():
            expected_output = None

        expected_variation = data.get('expectedVariation')
        if expected_variation is not None:
            if isinstance(expected_variation, bool) or not isinstance(expected_variation, (int, float)):
                raise ValidationError("expectedVariation must be a number in [0, 1]")
            expected_variation = clamp01(float(expected_variation))

        return cls(expected_output=expected_output, expected_variation=expected_variation)

    def is_empty(self) -> bool:
        return self.expected_output is None and self.expected_variation is None


@dataclass
class DimensionScores:
    """Core T/C/L predictability dimensions, each in [0, 1]"""
    T: float
    C: float
    L: float

    @property
    def overall(self) -> float:
        return (self.T + self.C + self.L) / 3

    def clamped(self) -> 'DimensionScores':
        return DimensionScores(T=clamp01(self.T), C=clamp01(self.C), L=clamp01(self.L))

    def to_dict(self) -> Dict[str, float]:
        return {'T': self.T, 'C': self.C, 'L': self.L}


@dataclass
class ModifierScores:
    """Auxiliary modifiers derived from the system profile"""
    O: float   # Observability / transparency
    I: float   # Controllability / intervention capability
    X: float   # Cross-context consistency
    Lp: float  # Latency predictability
    F: float   # Feedback responsiveness
    S: float   # Safety posture
    A: float   # Social alignment
    D: float   # External context drift

    def to_dict(self) -> Dict[str, float]:
        return {
            'O': self.O, 'I': self.I, 'X': self.X, 'Lp': self.Lp,
            'F': self.F, 'S': self.S, 'A': self.A, 'D': self.D,
        }


@dataclass
class PredictabilityMetrics:
    temporal_entropy: Optional[float] = None
    temporal_variation_rate: Optional[float] = None
    temporal_stability_from_classifier: Optional[float] = None

    def to_dict(self) -> Dict[str, float]:
        out = {}
        if self.temporal_entropy is not None:
            out['temporalEntropy'] = self.temporal_entropy
        if self.temporal_variation_rate is not None:
            out['temporalVariationRate'] = self.temporal_variation_rate
        if self.temporal_stability_from_classifier is not None:
            out['temporalStabilityFromClassifier'] = self.temporal_stability_from_classifier
        return out


@dataclass
class DimensionRationale:
    overall: Optional[str] = None
    T: Optional[str] = None
    C: Optional[str] = None
    L: Optional[str] = None
    cues: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DimensionRationale':
        def text(key):
            value = data.get(key)
            return value if isinstance(value, str) else None

        cues = data.get('cues')
        return cls(
            overall=text('overall'),
            T=text('T'),
            C=text('C'),
            L=text('L'),
            cues=[str(c) for c in cues] if isinstance(cues, list) else [],
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {k: v for k, v in
                               (('overall', self.overall), ('T', self.T), ('C', self.C), ('L', self.L))
                               if v is not None}
        if self.cues:
            out['cues'] = list(self.cues)
        return out


@dataclass
class SemanticEstimate:
    """One parsed classifier run, optionally carrying a stability proxy"""
    T: Optional[float] = None
    C: Optional[float] = None
    L: Optional[float] = None
    level: Optional[float] = None
    note: Optional[str] = None
    rationale: Optional[DimensionRationale] = None
    temporal_stability: Optional[float] = None

    def has_dimensions(self) -> bool:
        return self.T is not None and self.C is not None and self.L is not None


@dataclass
class EstimateOutcome:
    """Result of one semantic estimation call.

    Exactly one of three shapes:
      - estimate set: at least one classifier run parsed
      - error set: the first oracle attempt failed at the transport level
      - neither: the first attempt returned unparseable text
    """
    estimate: Optional[SemanticEstimate] = None
    error: Optional[OracleError] = None

    @property
    def ok(self) -> bool:
        return self.estimate is not None


@dataclass
class GuidanceItem:
    id: str
    level: int
    category: str
    title: str
    summary: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'level': self.level,
            'category': self.category,
            'title': self.title,
            'summary': self.summary,
        }


@dataclass
class ClassificationOutput:
    """Final result of a probe"""
    level: int
    dimensions: DimensionScores
    overall_score: float
    modifiers: Optional[ModifierScores] = None
    metrics: PredictabilityMetrics = field(default_factory=PredictabilityMetrics)
    rationale: Optional[DimensionRationale] = None
    guidance: List[GuidanceItem] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    version: str = OUTPUT_VERSION

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            'level': self.level,
            'dimensions': self.dimensions.to_dict(),
            'overallScore': self.overall_score,
        }
        if self.modifiers is not None:
            out['modifiers'] = self.modifiers.to_dict()
        out['metrics'] = self.metrics.to_dict()
        if self.rationale is not None:
            out['rationale'] = self.rationale.to_dict()
        out['guidance'] = [item.to_dict() for item in self.guidance]
        out['notes'] = list(self.notes)
        out['version'] = self.version
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClassificationOutput':
        """Rebuild an output previously rendered with to_dict"""
        try:
            dims = data['dimensions']
            dimensions = DimensionScores(T=float(dims['T']), C=float(dims['C']), L=float(dims['L']))
            level = int(data['level'])
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid classification output: {e}")

        modifiers = None
        if isinstance(data.get('modifiers'), dict):
            modifiers = ModifierScores(**{k: float(v) for k, v in data['modifiers'].items()})

        metrics_data = data.get('metrics') or {}
        metrics = PredictabilityMetrics(
            temporal_entropy=metrics_data.get('temporalEntropy'),
            temporal_variation_rate=metrics_data.get('temporalVariationRate'),
            temporal_stability_from_classifier=metrics_data.get('temporalStabilityFromClassifier'),
        )
        rationale = None
        if isinstance(data.get('rationale'), dict):
            rationale = DimensionRationale.from_dict(data['rationale'])

        return cls(
            level=level,
            dimensions=dimensions,
            overall_score=float(data.get('overallScore', dimensions.overall)),
            modifiers=modifiers,
            metrics=metrics,
            rationale=rationale,
            guidance=[GuidanceItem(**item) for item in data.get('guidance', [])],
            notes=list(data.get('notes', [])),
            version=data.get('version', OUTPUT_VERSION),
        )


@dataclass
class ProbeRequest:
    """Inputs to a single probe run"""
    prompt: str
    system_description: Optional[str] = None
    response: Optional[str] = None
    samples: List[str] = field(default_factory=list)
    profile: Optional[SystemProfile] = None
    expectations: Optional[UserExpectations] = None
    system_id: Optional[str] = None
    timestamp: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProbeRequest':
        if not isinstance(data, dict):
            raise ValidationError("Probe request must be a JSON object")
        prompt = data.get('prompt')
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValidationError("Probe request requires a non-empty 'prompt'")

        samples = data.get('responseSamples') or []
        if not isinstance(samples, list) or not all(isinstance(s, str) for s in samples):
            raise ValidationError("'responseSamples' must be a list of strings")

        for key in ('systemDescription', 'response', 'systemId', 'timestamp'):
            if data.get(key) is not None and not isinstance(data[key], str):
                raise ValidationError(f"'{key}' must be a string")

        profile = None
        if data.get('profile') is not None:
            profile = SystemProfile.from_dict(data['profile'])

        expectations = None
        if data.get('userExpectations') is not None:
            expectations = UserExpectations.from_dict(data['userExpectations'])
            if expectations.is_empty():
                expectations = None

        return cls(
            prompt=prompt,
            system_description=data.get('systemDescription'),
            response=data.get('response'),
            samples=list(samples),
            profile=profile,
            expectations=expectations,
            system_id=data.get('systemId'),
            timestamp=data.get('timestamp'),
        )


@dataclass
class RunRecord:
    """A finished probe kept for later comparison"""
    prompt: str
    output: ClassificationOutput
    samples: List[str] = field(default_factory=list)
    profile: Optional[SystemProfile] = None
    id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RunRecord':
        if not isinstance(data, dict):
            raise ValidationError("Run record must be a JSON object")
        prompt = data.get('prompt')
        if not isinstance(prompt, str):
            raise ValidationError("Run record requires a 'prompt'")
        if not isinstance(data.get('output'), dict):
            raise ValidationError("Run record requires an 'output' object")

        samples = data.get('responseSamples') or []
        if not isinstance(samples, list) or not all(isinstance(s, str) for s in samples):
            raise ValidationError("'responseSamples' must be a list of strings")

        profile = data.get('profile')
        return cls(
            prompt=prompt,
            output=ClassificationOutput.from_dict(data['output']),
            samples=list(samples),
            profile=SystemProfile.from_dict(profile) if profile is not None else None,
            id=data.get('id'),
        )
