# solbt/utils/errors.py
class UserInputError(RuntimeError):
    """
    Raised for invalid user-provided config (dates, policies, paths).
    Should NOT print traceback.
    """


class ContractViolation(RuntimeError):
    """
    ContractViolation (FINAL / FROZEN)

    所有 fail-fast 契约违规的基类：
      - 不允许被 clamp / default 修正成“合法”
      - 不允许被 except 吞掉继续跑
      - message 必须带组件 tag + 出问题的 record / 时间点
    """


class TimeContractError(ContractViolation):
    """Non-UTC / default instant, non-morning entry, broken settlement, excluded rows."""


class SeriesContractError(ContractViolation):
    """Empty, non-monotonic, duplicated or gapped series."""


class PriceContractError(ContractViolation):
    """Non-positive / non-finite price, threshold, probability."""


class LeverageConfigError(ContractViolation):
    """1/leverage - maintenance margin rate <= 0."""


class PipelineContractError(ContractViolation):
    """Causal / forward facts disagree with each other."""
